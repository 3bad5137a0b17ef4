from __future__ import annotations

import csv
import hashlib
import io
import json
import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from applyflow.core.errors import JobNotFoundError
from applyflow.db.base import utcnow
from applyflow.db.models import STAGE_TIMESTAMPS, JobRecord
from applyflow.types import AddJobResult, JobStatus, JobSummary, NewJob

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {
    "platform",
    "company",
    "title",
    "location",
    "status",
    "status_detail",
    "failure_category",
    "notes",
    "enriched_at",
    "prepared_at",
    "applied_at",
    "resume_path",
    "cover_letter_path",
    "artifact_paths",
    "metadata",
}

EXPORT_COLUMNS = [
    "job_id",
    "job_url",
    "platform",
    "company",
    "title",
    "location",
    "status",
    "status_detail",
    "failure_category",
    "notes",
    "discovered_at",
    "enriched_at",
    "prepared_at",
    "applied_at",
    "updated_at",
    "resume_path",
    "cover_letter_path",
    "artifact_paths",
    "metadata",
]


def derive_job_id(platform: str, job_url: str) -> str:
    digest = hashlib.sha256(job_url.strip().encode("utf-8")).hexdigest()
    return f"{platform}-{digest[:16]}"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def record_to_dict(record: JobRecord) -> dict[str, Any]:
    return {
        "job_id": record.job_id,
        "job_url": record.job_url,
        "platform": record.platform,
        "company": record.company,
        "title": record.title,
        "location": record.location,
        "status": record.status,
        "status_detail": record.status_detail,
        "failure_category": record.failure_category,
        "notes": record.notes,
        "discovered_at": _iso(record.discovered_at),
        "enriched_at": _iso(record.enriched_at),
        "prepared_at": _iso(record.prepared_at),
        "applied_at": _iso(record.applied_at),
        "updated_at": _iso(record.updated_at),
        "resume_path": record.resume_path,
        "cover_letter_path": record.cover_letter_path,
        "artifact_paths": list(record.artifact_paths or []),
        "metadata": dict(record.job_metadata or {}),
    }


def summarize(record: JobRecord) -> JobSummary:
    metadata = dict(record.job_metadata or {})
    return JobSummary(
        job_id=record.job_id,
        job_url=record.job_url,
        platform=record.platform,
        title=record.title,
        company=record.company,
        location=record.location,
        status=JobStatus(record.status),
        description=str(metadata.get("description", "")),
        metadata=metadata,
    )


class Tracker:
    """Durable store of job records, one row per unique job URL."""

    def __init__(self, session: Session):
        self.session = session

    def add_job(self, job: NewJob) -> AddJobResult:
        """Insert a job unless its URL is already tracked.

        Re-adding a known URL is a no-op that reports the existing job id.
        """
        existing = self.get_job_by_url(job.job_url)
        if existing:
            return AddJobResult(job_id=existing.job_id, inserted=False)

        job_id = job.job_id or derive_job_id(job.platform, job.job_url)
        now = utcnow()
        record = JobRecord(
            job_id=job_id,
            job_url=job.job_url,
            platform=job.platform,
            company=job.company,
            title=job.title,
            location=job.location,
            status=JobStatus.DISCOVERED.value,
            discovered_at=now,
            updated_at=now,
            artifact_paths=[],
            job_metadata=dict(job.metadata),
        )
        self.session.add(record)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            existing = self.get_job_by_url(job.job_url) or self.get_job(job_id)
            if existing is None:
                raise
            return AddJobResult(job_id=existing.job_id, inserted=False)

        logger.info("Tracked new job %s (%s)", job_id, job.job_url)
        return AddJobResult(job_id=job_id, inserted=True)

    def update_job(self, job_id: str, **fields: Any) -> JobRecord:
        """Patch a job record.

        ``metadata`` is merged into the stored mapping, ``artifact_paths`` are
        appended, and stage timestamps keep their first value. ``None`` leaves a
        field untouched.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"unknown job fields: {sorted(unknown)}")

        record = self.get_job(job_id)
        if not record:
            raise JobNotFoundError(job_id)

        for key, value in fields.items():
            if value is None:
                continue
            if key == "status":
                record.status = JobStatus(value).value
            elif key == "metadata":
                record.job_metadata = {**(record.job_metadata or {}), **dict(value)}
            elif key == "artifact_paths":
                current = list(record.artifact_paths or [])
                for path in value:
                    if str(path) not in current:
                        current.append(str(path))
                record.artifact_paths = current
            elif key in STAGE_TIMESTAMPS:
                if getattr(record, key) is None:
                    setattr(record, key, value)
            else:
                setattr(record, key, value)

        record.updated_at = utcnow()
        self.session.commit()
        self.session.refresh(record)
        return record

    def get_job(self, job_id: str) -> JobRecord | None:
        return self.session.get(JobRecord, job_id)

    def get_job_by_url(self, job_url: str) -> JobRecord | None:
        return self.session.scalar(select(JobRecord).where(JobRecord.job_url == job_url))

    def resolve(self, reference: str) -> JobRecord:
        if reference.startswith(("http://", "https://")):
            record = self.get_job_by_url(reference)
        else:
            record = self.get_job(reference)
        if not record:
            raise JobNotFoundError(reference)
        return record

    def get_jobs_by_status(self, status: JobStatus | str, limit: int | None = None) -> list[JobRecord]:
        statement = (
            select(JobRecord)
            .where(JobRecord.status == JobStatus(status).value)
            .order_by(JobRecord.discovered_at.asc(), JobRecord.job_id.asc())
        )
        if limit is not None:
            statement = statement.limit(limit)
        return list(self.session.scalars(statement).all())

    def list_jobs(self, limit: int | None = None) -> list[JobRecord]:
        statement = select(JobRecord).order_by(JobRecord.discovered_at.desc(), JobRecord.job_id.asc())
        if limit is not None:
            statement = statement.limit(limit)
        return list(self.session.scalars(statement).all())

    def count_jobs(self) -> int:
        return int(self.session.scalar(select(func.count()).select_from(JobRecord)) or 0)

    def status_counts(self) -> dict[str, int]:
        rows = self.session.execute(select(JobRecord.status, func.count()).group_by(JobRecord.status)).all()
        return {status: int(count) for status, count in rows}

    def export_json(self) -> list[dict[str, Any]]:
        return [record_to_dict(record) for record in self.list_jobs()]

    def export_csv(self) -> str:
        """Same rows as ``export_json``; null values become empty cells, lists and dicts are JSON text."""
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
        writer.writeheader()
        for row in self.export_json():
            writer.writerow({key: _csv_value(row[key]) for key in EXPORT_COLUMNS})
        return buffer.getvalue()


def _csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False, sort_keys=True)
    return str(value)

from __future__ import annotations

import asyncio
import json
import logging
import random
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from applyflow.adapters.generic import FormApplyAdapter
from applyflow.adapters.registry import AdapterRegistry
from applyflow.browser.session import write_error_note
from applyflow.config import Settings
from applyflow.core.errors import ConfigurationError, SourceError
from applyflow.core.profile import load_profile
from applyflow.db.base import utcnow
from applyflow.db.models import JobRecord
from applyflow.db.tracker import Tracker, summarize
from applyflow.documents.builder import DocumentBuilder
from applyflow.types import (
    ApplicantProfile,
    ApplyMode,
    ApplyOptions,
    ApplyOutcome,
    ApplyResult,
    DiscoverLineResult,
    DiscoveryCriteria,
    EnrichOutcome,
    JobStatus,
    NewJob,
    PrepareOutcome,
    ReportPaths,
)

logger = logging.getLogger(__name__)

APPLY_STATUS_MAP = {
    "submitted": JobStatus.SUBMITTED,
    "needs_review": JobStatus.NEEDS_REVIEW,
    "blocked": JobStatus.BLOCKED,
    "failed": JobStatus.FAILED,
    "skipped": JobStatus.SUBMITTED,
}


class Pipeline:
    """Sequences discover, enrich, prepare and apply for tracked jobs.

    Stage failures are written to the job record; only caller mistakes
    (unknown job) and local misconfiguration (missing profile) raise.
    """

    def __init__(
        self,
        settings: Settings,
        tracker: Tracker,
        registry: AdapterRegistry,
        documents: DocumentBuilder,
        profile_loader: Callable[[Settings], ApplicantProfile] = load_profile,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ):
        self.settings = settings
        self.tracker = tracker
        self.registry = registry
        self.documents = documents
        self.profile_loader = profile_loader
        self.sleep = sleep

    def resolve_job(self, reference: str) -> JobRecord:
        return self.tracker.resolve(reference.strip())

    def discover_from_file(self, path: Path) -> list[DiscoverLineResult]:
        results: list[DiscoverLineResult] = []
        lines = Path(path).read_text(encoding="utf-8").splitlines()
        for number, raw in enumerate(lines, start=1):
            url = raw.strip()
            if not url or url.startswith("#"):
                continue
            if not url.startswith(("http://", "https://")):
                logger.warning("Line %s is not a URL: %r", number, url)
                results.append(DiscoverLineResult(line=number, job_url=url, error="not an http(s) URL"))
                continue

            source = self.registry.get_job_source_for_url(url)
            platform = source.platform if source else "generic"
            added = self.tracker.add_job(NewJob(job_url=url, platform=platform))
            results.append(
                DiscoverLineResult(
                    line=number,
                    job_url=url,
                    job_id=added.job_id,
                    platform=platform,
                    inserted=added.inserted,
                )
            )

        inserted = sum(1 for item in results if item.inserted)
        logger.info("Discovered %s new job(s) from %s (%s lines read)", inserted, path, len(results))
        return results

    def discover_from_source(self, platform: str, criteria: DiscoveryCriteria) -> list[DiscoverLineResult]:
        source = self.registry.get_job_source(platform)
        if source is None:
            raise ValueError(f"no job source registered for platform {platform!r}")
        if not source.supports_discovery():
            raise ValueError(f"{source.name} does not support discovery")

        results: list[DiscoverLineResult] = []
        for number, stub in enumerate(source.discover(criteria), start=1):
            added = self.tracker.add_job(
                NewJob(
                    job_url=stub.job_url,
                    platform=stub.platform,
                    title=stub.title,
                    company=stub.company,
                    location=stub.location,
                    metadata=stub.metadata,
                )
            )
            results.append(
                DiscoverLineResult(
                    line=number,
                    job_url=stub.job_url,
                    job_id=added.job_id,
                    platform=stub.platform,
                    inserted=added.inserted,
                )
            )
        logger.info("Discovered %s posting(s) on %s board %s", len(results), platform, criteria.board)
        return results

    def enrich_job(self, reference: str) -> EnrichOutcome:
        record = self.resolve_job(reference)
        source = self.registry.get_job_source_for_url(record.job_url)
        if source is None or not source.supports_enrichment():
            detail = "no enrichment source for this URL"
            self.tracker.update_job(record.job_id, status_detail=detail)
            return EnrichOutcome(job_id=record.job_id, ok=False, status=JobStatus(record.status), error=detail)

        try:
            enriched = source.enrich(record.job_url)
        except SourceError as exc:
            logger.warning("Enrichment failed for %s: %s", record.job_id, exc)
            updated = self.tracker.update_job(
                record.job_id,
                failure_category=f"enrich:{exc.category}",
                status_detail=f"enrichment failed: {exc}",
            )
            return EnrichOutcome(job_id=record.job_id, ok=False, status=JobStatus(updated.status), error=str(exc))
        except Exception as exc:
            logger.exception("Enrichment source %s crashed for %s", source.name, record.job_id)
            updated = self.tracker.update_job(
                record.job_id,
                failure_category="enrich:parse",
                status_detail=f"enrichment failed: {type(exc).__name__}: {exc}",
            )
            return EnrichOutcome(job_id=record.job_id, ok=False, status=JobStatus(updated.status), error=str(exc))

        metadata: dict[str, Any] = dict(enriched.metadata)
        if enriched.description:
            metadata["description"] = enriched.description
        metadata["enriched_by"] = source.name

        cleared = "" if record.failure_category.startswith("enrich:") else None
        updated = self.tracker.update_job(
            record.job_id,
            title=enriched.title or record.title,
            company=enriched.company or record.company,
            location=enriched.location or record.location,
            metadata=metadata,
            status=self._stage_status(record, JobStatus.ENRICHED),
            status_detail=cleared,
            failure_category=cleared,
            enriched_at=utcnow(),
        )
        logger.info("Enriched %s via %s", record.job_id, source.name)
        return EnrichOutcome(job_id=record.job_id, ok=True, status=JobStatus(updated.status))

    def prepare_job(self, reference: str, profile: ApplicantProfile | None = None) -> PrepareOutcome:
        record = self.resolve_job(reference)
        profile = profile or self.profile_loader(self.settings)

        warnings: list[str] = []
        enrichment = self.enrich_job(record.job_id)
        if not enrichment.ok:
            warnings.append(f"enrichment skipped: {enrichment.error}")
            logger.warning("Preparing %s with last known job data (%s)", record.job_id, enrichment.error)

        record = self.resolve_job(record.job_id)
        built = self.documents.build(summarize(record), self.settings.applications_dir / record.job_id, profile)
        if not built.pdf_rendered and self.settings.pdf_enabled:
            warnings.append("pdf rendering failed; markdown documents attached")

        updated = self.tracker.update_job(
            record.job_id,
            resume_path=built.resume_path,
            cover_letter_path=built.cover_letter_path,
            status=self._stage_status(record, JobStatus.PREPARED),
            prepared_at=utcnow(),
            metadata={"documents": built.metadata},
        )
        return PrepareOutcome(
            job_id=record.job_id,
            ok=True,
            status=JobStatus(updated.status),
            resume_path=built.resume_path,
            cover_letter_path=built.cover_letter_path,
            warnings=warnings,
        )

    async def apply_job(
        self,
        reference: str,
        mode: ApplyMode | None = None,
        dry_run: bool | None = None,
    ) -> ApplyOutcome:
        record = self.resolve_job(reference)
        if record.status == JobStatus.SUBMITTED.value:
            logger.info("Job %s already submitted; nothing to do", record.job_id)
            return ApplyOutcome(
                job_id=record.job_id,
                status=JobStatus.SUBMITTED,
                detail="already submitted",
            )

        profile = self.profile_loader(self.settings)
        mode = mode or self.settings.default_apply_mode
        dry_run = self.settings.dry_run if dry_run is None else dry_run

        self.prepare_job(record.job_id, profile=profile)
        record = self.resolve_job(record.job_id)

        adapter = self.registry.get_apply_adapter_for_url(record.job_url) or FormApplyAdapter(self.settings)
        run_dir = self.settings.runs_dir / f"{record.job_id}-{utcnow():%Y%m%d%H%M%S%f}"
        options = ApplyOptions(
            mode=mode,
            dry_run=dry_run,
            profile=profile,
            resume_path=Path(record.resume_path) if record.resume_path else None,
            cover_letter_path=Path(record.cover_letter_path) if record.cover_letter_path else None,
            run_dir=run_dir,
        )

        logger.info("Applying to %s with %s (mode=%s dry_run=%s)", record.job_id, adapter.name, mode, dry_run)
        try:
            result = await adapter.apply_assisted(summarize(record), options)
        except Exception as exc:
            logger.exception("Apply adapter %s raised for %s", adapter.name, record.job_id)
            result = ApplyResult(
                status="failed",
                reason=f"adapter error: {exc}",
                failure_category="error",
                artifacts=[write_error_note(run_dir, "error", f"{adapter.name} raised {type(exc).__name__}: {exc}")],
            )

        return self._record_apply(record, adapter.name, options, result)

    def _record_apply(
        self,
        record: JobRecord,
        adapter_name: str,
        options: ApplyOptions,
        result: ApplyResult,
    ) -> ApplyOutcome:
        status = APPLY_STATUS_MAP[result.status]
        detail = result.reason
        if result.status == "skipped":
            detail = "already applied"

        finished = utcnow()
        self.tracker.update_job(
            record.job_id,
            status=status,
            status_detail=detail,
            failure_category=result.failure_category,
            notes=result.notes,
            applied_at=finished if status is JobStatus.SUBMITTED else None,
            artifact_paths=result.artifacts,
            metadata={
                "last_apply": {
                    "adapter": adapter_name,
                    "mode": options.mode,
                    "dry_run": options.dry_run,
                    "result": result.status,
                    "run_dir": str(options.run_dir),
                    "filled_fields": result.filled_fields,
                    "fallback_fields": result.fallback_fields,
                    "finished_at": finished.isoformat(),
                }
            },
        )
        logger.info("Apply result for %s: %s (%s)", record.job_id, result.status, detail)
        return ApplyOutcome(
            job_id=record.job_id,
            status=status,
            apply_status=result.status,
            detail=detail,
            failure_category=result.failure_category,
            artifacts=result.artifacts,
            run_dir=str(options.run_dir),
            finished_at=finished,
        )

    async def apply_batch(
        self,
        limit: int | None = None,
        mode: ApplyMode | None = None,
        dry_run: bool | None = None,
    ) -> list[ApplyOutcome]:
        jobs = self.tracker.get_jobs_by_status(JobStatus.PREPARED, limit=limit or self.settings.batch_limit)
        outcomes: list[ApplyOutcome] = []
        for index, record in enumerate(jobs):
            if index > 0:
                delay = random.uniform(self.settings.apply_delay_min_sec, self.settings.apply_delay_max_sec)
                logger.info("Waiting %.1fs before next application", delay)
                await self.sleep(delay)
            try:
                outcomes.append(await self.apply_job(record.job_id, mode=mode, dry_run=dry_run))
            except ConfigurationError:
                raise
            except Exception as exc:
                logger.exception("Batch apply failed for %s; continuing", record.job_id)
                self.tracker.update_job(record.job_id, status_detail=f"batch apply error: {exc}")
                outcomes.append(
                    ApplyOutcome(job_id=record.job_id, status=JobStatus(record.status), detail=str(exc))
                )
        logger.info("Batch apply finished: %s job(s)", len(outcomes))
        return outcomes

    def write_reports(self) -> ReportPaths:
        reports_dir = Path(self.settings.reports_dir)
        reports_dir.mkdir(parents=True, exist_ok=True)
        stamp = f"{utcnow():%Y%m%d%H%M%S}"
        json_path = reports_dir / f"report-{stamp}.json"
        csv_path = reports_dir / f"report-{stamp}.csv"

        rows = self.tracker.export_json()
        json_path.write_text(json.dumps(rows, indent=2), encoding="utf-8")
        csv_path.write_text(self.tracker.export_csv(), encoding="utf-8")
        logger.info("Wrote report for %s job(s) to %s", len(rows), reports_dir)
        return ReportPaths(json_path=str(json_path), csv_path=str(csv_path), total=len(rows))

    @staticmethod
    def _stage_status(record: JobRecord, target: JobStatus) -> JobStatus:
        """Status after an enrich or prepare run. Submitted jobs stay submitted."""
        if record.status == JobStatus.SUBMITTED.value:
            return JobStatus.SUBMITTED
        return target

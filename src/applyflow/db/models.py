from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from applyflow.db.base import Base, utcnow
from applyflow.types import JobStatus

STAGE_TIMESTAMPS = ("enriched_at", "prepared_at", "applied_at")


class JobRecord(Base):
    __tablename__ = "jobs"
    __table_args__ = (UniqueConstraint("job_url", name="uq_jobs_job_url"),)

    job_id: Mapped[str] = mapped_column(String(120), primary_key=True)
    job_url: Mapped[str] = mapped_column(String(2000), nullable=False)
    platform: Mapped[str] = mapped_column(String(40), default="generic", nullable=False)
    company: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    title: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    location: Mapped[str] = mapped_column(String(255), default="", nullable=False)

    status: Mapped[str] = mapped_column(
        String(30), default=JobStatus.DISCOVERED.value, nullable=False, index=True
    )
    status_detail: Mapped[str] = mapped_column(Text, default="", nullable=False)
    failure_category: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)

    discovered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    enriched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    prepared_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    applied_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    resume_path: Mapped[str] = mapped_column(String(1000), default="", nullable=False)
    cover_letter_path: Mapped[str] = mapped_column(String(1000), default="", nullable=False)
    artifact_paths: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    job_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

ApplyMode = Literal["assisted", "auto"]
ApplyStatus = Literal["submitted", "needs_review", "blocked", "failed", "skipped"]
SourceErrorCategory = Literal["network", "http", "parse", "unsupported"]


class JobStatus(StrEnum):
    DISCOVERED = "discovered"
    ENRICHED = "enriched"
    PREPARED = "prepared"
    SUBMITTED = "submitted"
    NEEDS_REVIEW = "needs_review"
    BLOCKED = "blocked"
    FAILED = "failed"


class Friction(StrEnum):
    NONE = "none"
    CAPTCHA = "captcha"
    TWO_FACTOR = "two-factor"
    BOT_CHECK = "bot-check"


class DiscoveryCriteria(BaseModel):
    board: str = ""
    query: str = ""
    location: str = ""
    limit: int = 25

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, value: int) -> int:
        if value < 1:
            raise ValueError("limit must be >= 1")
        return value


class JobStub(BaseModel):
    job_url: str
    platform: str
    title: str = ""
    company: str = ""
    location: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class EnrichedJob(BaseModel):
    title: str = ""
    company: str = ""
    location: str = ""
    description: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class NewJob(BaseModel):
    job_url: str
    platform: str
    job_id: str | None = None
    title: str = ""
    company: str = ""
    location: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class AddJobResult(BaseModel):
    job_id: str
    inserted: bool


class JobSummary(BaseModel):
    """Read-only view of a tracked job handed to adapters and document builders."""

    job_id: str
    job_url: str
    platform: str
    title: str = ""
    company: str = ""
    location: str = ""
    status: JobStatus = JobStatus.DISCOVERED
    description: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class ApplicantProfile(BaseModel):
    first_name: str = ""
    last_name: str = ""
    full_name: str = ""
    email: str = ""
    phone: str = ""
    location: str = ""
    city: str = ""
    country: str = ""
    linkedin_url: str = ""
    github_url: str = ""
    website_url: str = ""
    current_company: str = ""
    current_title: str = ""
    years_experience: str = ""
    salary_expectation: str = ""
    notice_period: str = ""
    work_authorization: str = ""
    requires_sponsorship: str = ""
    willing_to_relocate: str = ""
    summary: str = ""
    skills: list[str] = Field(default_factory=list)
    answers: dict[str, str] = Field(default_factory=dict)

    @property
    def display_name(self) -> str:
        if self.full_name:
            return self.full_name
        return " ".join(part for part in [self.first_name, self.last_name] if part)


class ApplyOptions(BaseModel):
    mode: ApplyMode = "assisted"
    dry_run: bool = False
    profile: ApplicantProfile
    resume_path: Path | None = None
    cover_letter_path: Path | None = None
    run_dir: Path

    @property
    def should_submit(self) -> bool:
        return self.mode == "auto" and not self.dry_run


class ApplyResult(BaseModel):
    status: ApplyStatus
    reason: str = ""
    notes: str = ""
    failure_category: str = ""
    artifacts: list[str] = Field(default_factory=list)
    filled_fields: list[str] = Field(default_factory=list)
    fallback_fields: list[str] = Field(default_factory=list)


class FormOption(BaseModel):
    value: str = ""
    text: str = ""


class FormField(BaseModel):
    key: str
    tag: Literal["input", "textarea", "select"]
    input_type: str = "text"
    label: str = ""
    name: str = ""
    element_id: str = ""
    value: str = ""
    required: bool = False
    options: list[FormOption] = Field(default_factory=list)


class FormButton(BaseModel):
    key: str
    text: str = ""


class FieldFill(BaseModel):
    key: str
    label: str
    value: str
    fallback: bool = False


class CapturedArtifacts(BaseModel):
    screenshot_path: str = ""
    html_path: str = ""

    @property
    def paths(self) -> list[str]:
        return [path for path in [self.screenshot_path, self.html_path] if path]


class TailoredDocuments(BaseModel):
    resume_markdown: str
    cover_letter_markdown: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class BuiltDocuments(BaseModel):
    resume_path: str
    cover_letter_path: str
    resume_source_path: str = ""
    pdf_rendered: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


class DiscoverLineResult(BaseModel):
    line: int
    job_url: str
    job_id: str = ""
    platform: str = ""
    inserted: bool = False
    error: str = ""


class EnrichOutcome(BaseModel):
    job_id: str
    ok: bool
    status: JobStatus
    error: str = ""


class PrepareOutcome(BaseModel):
    job_id: str
    ok: bool
    status: JobStatus
    resume_path: str = ""
    cover_letter_path: str = ""
    warnings: list[str] = Field(default_factory=list)


class ApplyOutcome(BaseModel):
    job_id: str
    status: JobStatus
    apply_status: ApplyStatus | None = None
    detail: str = ""
    failure_category: str = ""
    artifacts: list[str] = Field(default_factory=list)
    run_dir: str = ""
    finished_at: datetime | None = None


class ReportPaths(BaseModel):
    json_path: str
    csv_path: str
    total: int

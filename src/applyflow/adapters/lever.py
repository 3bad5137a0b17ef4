from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from urllib.parse import urlparse

from applyflow.adapters import html as html_helpers
from applyflow.adapters.base import JobSourceAdapter, matches_criteria
from applyflow.adapters.generic import FormApplyAdapter
from applyflow.config import Settings
from applyflow.core.errors import SourceError
from applyflow.core.job_fetcher import fetch_html, fetch_json
from applyflow.types import DiscoveryCriteria, EnrichedJob, JobStub, JobSummary

logger = logging.getLogger(__name__)

API_BASE = "https://api.lever.co/v0/postings"
URL_PATTERN = re.compile(r"^https?://jobs\.(eu\.)?lever\.co/", re.IGNORECASE)


def parse_job_url(url: str) -> tuple[str, str] | None:
    """Return ``(company, posting_id)`` for a Lever posting URL."""
    segments = [segment for segment in urlparse(url).path.split("/") if segment]
    if len(segments) >= 2:
        return segments[0], segments[1]
    return None


def _categories(data: dict) -> dict:
    categories = data.get("categories")
    return categories if isinstance(categories, dict) else {}


def _posting_text(data: dict) -> str:
    sections = [str(data.get("descriptionPlain", "")).strip()]
    for item in data.get("lists") or []:
        if not isinstance(item, dict):
            continue
        heading = str(item.get("text", "")).strip()
        body = html_helpers.html_to_text(str(item.get("content", "")))
        sections.append("\n".join(part for part in [heading, body] if part))
    sections.append(str(data.get("additionalPlain", "")).strip())
    return "\n\n".join(section for section in sections if section)


class LeverSource(JobSourceAdapter):
    platform = "lever"
    name = "lever"

    def __init__(self, settings: Settings):
        self.settings = settings

    def can_handle_url(self, url: str) -> bool:
        return bool(URL_PATTERN.match(url))

    def supports_discovery(self) -> bool:
        return True

    def supports_enrichment(self) -> bool:
        return True

    def discover(self, criteria: DiscoveryCriteria) -> Iterator[JobStub]:
        if not criteria.board:
            raise ValueError("lever discovery needs a company slug")

        payload = fetch_json(f"{API_BASE}/{criteria.board}?mode=json", self.settings)
        if not isinstance(payload, list):
            raise SourceError("unexpected postings payload", category="parse", url=criteria.board)

        yielded = 0
        for raw in payload:
            if yielded >= criteria.limit:
                return
            try:
                categories = _categories(raw)
                stub = JobStub(
                    job_url=raw["hostedUrl"],
                    platform=self.platform,
                    title=str(raw.get("text", "")).strip(),
                    company=criteria.board,
                    location=str(categories.get("location", "")).strip(),
                    metadata={
                        "lever_id": raw.get("id"),
                        "team": categories.get("team", ""),
                        "commitment": categories.get("commitment", ""),
                    },
                )
            except (KeyError, TypeError, AttributeError, ValueError) as exc:
                logger.warning("Skipping malformed lever posting on %s: %s", criteria.board, exc)
                continue
            if not matches_criteria(stub, criteria):
                continue
            yielded += 1
            yield stub

    def enrich(self, job_url: str) -> EnrichedJob:
        parts = parse_job_url(job_url)
        if parts:
            company, posting_id = parts
            try:
                data = fetch_json(f"{API_BASE}/{company}/{posting_id}", self.settings)
                if isinstance(data, dict) and data.get("text"):
                    categories = _categories(data)
                    return EnrichedJob(
                        title=str(data.get("text", "")).strip(),
                        company=company,
                        location=str(categories.get("location", "")).strip(),
                        description=_posting_text(data),
                        metadata={
                            "lever_id": data.get("id"),
                            "team": categories.get("team", ""),
                            "commitment": categories.get("commitment", ""),
                        },
                    )
            except SourceError as exc:
                logger.info("Lever API lookup failed for %s (%s); reading the page instead", job_url, exc)

        soup = html_helpers.parse(fetch_html(job_url, self.settings))
        return EnrichedJob(
            title=html_helpers.text_of(soup, ".posting-headline h2") or html_helpers.text_of(soup, "h2"),
            company=parts[0] if parts else "",
            location=html_helpers.text_of(soup, ".posting-categories .location")
            or html_helpers.text_of(soup, ".location"),
            description=html_helpers.block_text(soup, "[data-qa=job-description]")
            or html_helpers.block_text(soup, ".section-wrapper"),
        )


class LeverApplyAdapter(FormApplyAdapter):
    platform = "lever"
    name = "lever-apply"

    def can_handle_url(self, url: str) -> bool:
        return bool(URL_PATTERN.match(url))

    def application_url(self, job: JobSummary) -> str:
        url = job.job_url.split("?")[0].rstrip("/")
        return url if url.endswith("/apply") else f"{url}/apply"

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from html import unescape
from urllib.parse import parse_qs, urlparse

from applyflow.adapters import html as html_helpers
from applyflow.adapters.base import JobSourceAdapter, matches_criteria
from applyflow.adapters.generic import FormApplyAdapter
from applyflow.config import Settings
from applyflow.core.errors import SourceError
from applyflow.core.job_fetcher import fetch_html, fetch_json
from applyflow.types import DiscoveryCriteria, EnrichedJob, JobStub

logger = logging.getLogger(__name__)

API_BASE = "https://boards-api.greenhouse.io/v1"
URL_PATTERN = re.compile(r"^https?://(job-boards|boards)(\.eu)?\.greenhouse\.io/", re.IGNORECASE)
JOB_PATH = re.compile(r"^/(?P<board>[^/]+)/jobs/(?P<job_id>\d+)")


def parse_job_url(url: str) -> tuple[str, str] | None:
    """Return ``(board, job_id)`` for a Greenhouse posting URL."""
    parsed = urlparse(url)
    match = JOB_PATH.match(parsed.path)
    if match:
        return match.group("board"), match.group("job_id")

    query = parse_qs(parsed.query)
    if "for" in query and "token" in query:
        return query["for"][0], query["token"][0]
    return None


def _location_name(value: object) -> str:
    if isinstance(value, dict):
        return str(value.get("name") or "").strip()
    if isinstance(value, str):
        return value.strip()
    return ""


class GreenhouseSource(JobSourceAdapter):
    platform = "greenhouse"
    name = "greenhouse"

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
            raise ValueError("greenhouse discovery needs a board token")

        payload = fetch_json(f"{API_BASE}/boards/{criteria.board}/jobs", self.settings)
        jobs = payload.get("jobs") if isinstance(payload, dict) else None
        if not isinstance(jobs, list):
            raise SourceError("unexpected board payload", category="parse", url=criteria.board)

        yielded = 0
        for raw in jobs:
            if yielded >= criteria.limit:
                return
            try:
                stub = JobStub(
                    job_url=raw["absolute_url"],
                    platform=self.platform,
                    title=str(raw.get("title", "")).strip(),
                    company=criteria.board,
                    location=_location_name(raw.get("location")),
                    metadata={"greenhouse_id": raw.get("id"), "updated_at": raw.get("updated_at", "")},
                )
            except (KeyError, TypeError, AttributeError, ValueError) as exc:
                logger.warning("Skipping malformed greenhouse posting on %s: %s", criteria.board, exc)
                continue
            if not matches_criteria(stub, criteria):
                continue
            yielded += 1
            yield stub

    def enrich(self, job_url: str) -> EnrichedJob:
        parts = parse_job_url(job_url)
        if parts:
            board, job_id = parts
            try:
                return self._enrich_from_api(board, job_id)
            except SourceError as exc:
                logger.info("Greenhouse API lookup failed for %s (%s); reading the page instead", job_url, exc)
        return self._enrich_from_page(job_url)

    def _enrich_from_api(self, board: str, job_id: str) -> EnrichedJob:
        data = fetch_json(f"{API_BASE}/boards/{board}/jobs/{job_id}", self.settings)
        if not isinstance(data, dict) or not data.get("title"):
            raise SourceError("posting payload has no title", category="parse")

        departments = [item.get("name", "") for item in data.get("departments") or [] if isinstance(item, dict)]
        return EnrichedJob(
            title=str(data.get("title", "")).strip(),
            company=str(data.get("company_name") or board).strip(),
            location=_location_name(data.get("location")),
            description=html_helpers.html_to_text(unescape(str(data.get("content", "")))),
            metadata={
                "greenhouse_id": data.get("id"),
                "departments": [name for name in departments if name],
                "updated_at": data.get("updated_at", ""),
            },
        )

    def _enrich_from_page(self, job_url: str) -> EnrichedJob:
        soup = html_helpers.parse(fetch_html(job_url, self.settings))
        posting = html_helpers.find_job_posting(soup)
        if posting:
            return html_helpers.job_from_posting(posting)

        return EnrichedJob(
            title=html_helpers.text_of(soup, "h1") or html_helpers.text_of(soup, ".app-title"),
            company=html_helpers.meta_content(soup, "og:site_name") or html_helpers.text_of(soup, ".company-name"),
            location=html_helpers.text_of(soup, "[class*=location]"),
            description=html_helpers.block_text(soup, "#content") or html_helpers.block_text(soup, ".job__description"),
        )


class GreenhouseApplyAdapter(FormApplyAdapter):
    platform = "greenhouse"
    name = "greenhouse-apply"

    def can_handle_url(self, url: str) -> bool:
        return bool(URL_PATTERN.match(url))

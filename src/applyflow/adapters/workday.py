from __future__ import annotations

import logging
import re
from urllib.parse import urlparse

from applyflow.adapters import html as html_helpers
from applyflow.adapters.base import JobSourceAdapter
from applyflow.adapters.generic import FormApplyAdapter
from applyflow.browser.filling import APPLY_PATTERNS, find_button
from applyflow.browser.session import BrowserSession
from applyflow.config import Settings
from applyflow.core.job_fetcher import fetch_html
from applyflow.types import ApplyResult, EnrichedJob, JobSummary

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"^https?://[^/]*myworkdayjobs\.com/", re.IGNORECASE)
APPLY_MANUALLY = [re.compile(r"^apply manually$")]


def tenant_from_url(url: str) -> str:
    host = urlparse(url).netloc.lower()
    return host.split(".")[0] if host else ""


class WorkdaySource(JobSourceAdapter):
    """Enrichment only; Workday boards have no public listing API."""

    platform = "workday"
    name = "workday"

    def __init__(self, settings: Settings):
        self.settings = settings

    def can_handle_url(self, url: str) -> bool:
        return bool(URL_PATTERN.match(url))

    def supports_enrichment(self) -> bool:
        return True

    def enrich(self, job_url: str) -> EnrichedJob:
        soup = html_helpers.parse(fetch_html(job_url, self.settings))
        posting = html_helpers.find_job_posting(soup)
        if posting:
            job = html_helpers.job_from_posting(posting)
            if not job.company:
                job.company = tenant_from_url(job_url)
            return job

        return EnrichedJob(
            title=html_helpers.text_of(soup, "[data-automation-id=jobPostingHeader]") or html_helpers.text_of(soup, "h2"),
            company=html_helpers.meta_content(soup, "og:site_name") or tenant_from_url(job_url),
            location=html_helpers.text_of(soup, "[data-automation-id=locations]"),
            description=html_helpers.block_text(soup, "[data-automation-id=jobPostingDescription]"),
        )


class WorkdayApplyAdapter(FormApplyAdapter):
    platform = "workday"
    name = "workday-apply"

    def can_handle_url(self, url: str) -> bool:
        return bool(URL_PATTERN.match(url))

    async def open_application(self, session: BrowserSession, job: JobSummary) -> ApplyResult | None:
        forms = session.forms
        apply_button = find_button(await forms.list_buttons(), APPLY_PATTERNS)
        if apply_button is not None:
            await forms.click(apply_button.key)
            await forms.wait(self.settings.form_step_delay_ms)

        manual = find_button(await forms.list_buttons(), APPLY_MANUALLY)
        if manual is not None:
            await forms.click(manual.key)
            await forms.wait(self.settings.form_step_delay_ms)

        fields = await forms.collect_fields()
        if any(field.input_type == "password" for field in fields):
            logger.info("Workday tenant %s requires an account for %s", tenant_from_url(job.job_url), job.job_id)
            return ApplyResult(
                status="blocked",
                reason="workday account sign-in required",
                failure_category="account-required",
            )
        return None

from __future__ import annotations

import logging
import re

from applyflow.adapters.generic import FormApplyAdapter
from applyflow.browser.filling import APPLY_PATTERNS, find_button
from applyflow.browser.session import BrowserSession, LaunchOptions
from applyflow.types import ApplyResult, JobSummary

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"^https?://([a-z]{2,3}\.)?(www\.)?linkedin\.com/jobs/", re.IGNORECASE)
EASY_APPLY = [re.compile(r"^easy apply\b")]
LOGIN_URL_MARKERS = ("/login", "/authwall", "/checkpoint", "/uas/")
LOGIN_TEXT = re.compile(r"sign in to (view|apply)|join now to apply|sign in or join")


class LinkedInApplyAdapter(FormApplyAdapter):
    """Easy Apply only. Uses a persistent browser profile holding the user's own login."""

    platform = "linkedin"
    name = "linkedin-easy-apply"

    def can_handle_url(self, url: str) -> bool:
        return bool(URL_PATTERN.match(url))

    def launch_options(self) -> LaunchOptions:
        return LaunchOptions.from_settings(self.settings, persistent=True)

    async def open_application(self, session: BrowserSession, job: JobSummary) -> ApplyResult | None:
        forms = session.forms
        url = (await forms.current_url()).lower()
        text = " ".join((await forms.body_text()).lower().split())
        if any(marker in url for marker in LOGIN_URL_MARKERS) or LOGIN_TEXT.search(text):
            return ApplyResult(
                status="blocked",
                reason="linkedin login required; sign in once with the persistent browser profile",
                failure_category="login-required",
            )

        buttons = await forms.list_buttons()
        easy_apply = find_button(buttons, EASY_APPLY)
        if easy_apply is None:
            if find_button(buttons, APPLY_PATTERNS) is not None:
                return ApplyResult(
                    status="blocked",
                    reason="posting applies on the company site, not Easy Apply",
                    failure_category="external-apply",
                )
            return ApplyResult(
                status="failed",
                reason="no Easy Apply control found",
                failure_category="no-apply-control",
            )

        logger.info("Opening Easy Apply for %s", job.job_id)
        await forms.click(easy_apply.key)
        await forms.wait(self.settings.form_step_delay_ms)
        return None

from __future__ import annotations

import logging
import re
from pathlib import Path

from applyflow.adapters import html as html_helpers
from applyflow.adapters.base import ApplyAdapter, JobSourceAdapter
from applyflow.browser import session as browser
from applyflow.browser.filling import (
    APPLY_PATTERNS,
    NEXT_PATTERNS,
    SUBMIT_PATTERNS,
    FormFiller,
    find_button,
    upload_documents,
)
from applyflow.browser.session import BrowserSession, LaunchOptions
from applyflow.config import Settings
from applyflow.core.job_fetcher import fetch_html, page_text
from applyflow.core.retry import StepTracker
from applyflow.types import ApplyOptions, ApplyResult, EnrichedJob, Friction, JobSummary

logger = logging.getLogger(__name__)

SUCCESS_PATTERNS = [
    re.compile(r"thank(s| you) for (applying|your application|your interest)"),
    re.compile(r"application (has been |was )?(submitted|received|sent)"),
    re.compile(r"we('ve| have) received your application"),
    re.compile(r"your application (has been|was) (submitted|received|sent)"),
]
ALREADY_APPLIED_PATTERNS = [
    re.compile(r"you('ve| have) already applied"),
    re.compile(r"\balready applied\b"),
    re.compile(r"\bapplied \d+ (minute|hour|day|week|month)s? ago\b"),
]


class GenericPageSource(JobSourceAdapter):
    """Reads any posting page. Registered last so platform sources win."""

    platform = "generic"
    name = "generic-page"

    def __init__(self, settings: Settings):
        self.settings = settings

    def can_handle_url(self, url: str) -> bool:
        return True

    def supports_enrichment(self) -> bool:
        return True

    def enrich(self, job_url: str) -> EnrichedJob:
        soup = html_helpers.parse(fetch_html(job_url, self.settings))
        posting = html_helpers.find_job_posting(soup)
        if posting:
            job = html_helpers.job_from_posting(posting)
            job.metadata["source"] = "json-ld"
            return job

        title = html_helpers.meta_content(soup, "og:title") or html_helpers.text_of(soup, "h1")
        if not title and soup.title:
            title = soup.title.get_text(" ").strip()
        description = html_helpers.meta_content(soup, "og:description")
        body = html_helpers.block_text(soup, "main") or page_text(str(soup))
        return EnrichedJob(
            title=title,
            company=html_helpers.meta_content(soup, "og:site_name"),
            description=body or description,
            metadata={"source": "html"},
        )


class FormApplyAdapter(ApplyAdapter):
    """Fills whatever application form the page shows and walks its steps.

    Subclasses narrow ``can_handle_url`` and override the hooks to open the
    form or recognise platform gates.
    """

    platform = "generic"
    name = "generic-form"
    success_patterns = SUCCESS_PATTERNS
    already_applied_patterns = ALREADY_APPLIED_PATTERNS

    def __init__(self, settings: Settings, launcher: browser.Launcher | None = None):
        self.settings = settings
        self.launcher = launcher
        self.filler = FormFiller()

    def can_handle_url(self, url: str) -> bool:
        return True

    def launch_options(self) -> LaunchOptions:
        return LaunchOptions.from_settings(self.settings)

    def application_url(self, job: JobSummary) -> str:
        return job.job_url

    async def open_application(self, session: BrowserSession, job: JobSummary) -> ApplyResult | None:
        """Bring the application form on screen; return a result to stop early."""
        if await session.forms.collect_fields():
            return None
        apply_button = find_button(await session.forms.list_buttons(), APPLY_PATTERNS)
        if apply_button is not None:
            logger.info("Opening application form via %r", apply_button.text)
            await session.forms.click(apply_button.key)
            await session.forms.wait(self.settings.form_step_delay_ms)
        return None

    async def apply_assisted(self, job: JobSummary, options: ApplyOptions) -> ApplyResult:
        run_dir = Path(options.run_dir)
        run_dir.mkdir(parents=True, exist_ok=True)
        session: BrowserSession | None = None
        try:
            launcher = self.launcher or browser.launch
            session = await launcher(self.launch_options())
            url = self.application_url(job)
            reached = await browser.navigate_with_retries(
                session,
                url,
                retries=self.settings.nav_retries,
                delay_ms=self.settings.nav_retry_delay_ms,
            )
            if not reached:
                result = ApplyResult(status="failed", reason=f"navigation failed: {url}", failure_category="navigation")
                return await self._with_artifacts(session, run_dir, "navigation-failed", result)
            return await self._run(session, job, options, run_dir)
        except Exception as exc:
            logger.exception("%s crashed while applying to %s", self.name, job.job_id)
            result = ApplyResult(status="failed", reason=f"unexpected error: {exc}", failure_category="error")
            if session is not None:
                return await self._with_artifacts(session, run_dir, "error", result)
            note = browser.write_error_note(run_dir, "error", f"{self.name}: {type(exc).__name__}: {exc}")
            return result.model_copy(update={"artifacts": [note]})
        finally:
            if session is not None:
                try:
                    await session.close()
                except Exception as exc:
                    logger.warning("Browser shutdown failed: %s", exc)

    async def _run(
        self,
        session: BrowserSession,
        job: JobSummary,
        options: ApplyOptions,
        run_dir: Path,
    ) -> ApplyResult:
        friction = await browser.detect_friction(session)
        if friction is not Friction.NONE:
            return await self._blocked(session, run_dir, friction, "on arrival")

        if await self._matches(session, self.already_applied_patterns):
            result = ApplyResult(status="skipped", reason="already applied")
            return await self._with_artifacts(session, run_dir, "already-applied", result)

        gate = await self.open_application(session, job)
        if gate is not None:
            return await self._with_artifacts(session, run_dir, gate.failure_category or gate.status, gate)

        steps = StepTracker(self.settings.form_max_steps, self.settings.form_stuck_threshold)
        filled: dict[str, str] = {}
        fallbacks: list[str] = []
        uploaded: set[str] = set()

        while True:
            friction = await browser.detect_friction(session)
            if friction is not Friction.NONE:
                return await self._blocked(session, run_dir, friction, f"at step {steps.steps + 1}", filled, fallbacks)

            report = await self.filler.fill(session.forms, options.profile)
            for item in report.fills:
                filled[item.label] = item.value
                if item.fallback and item.label not in fallbacks:
                    fallbacks.append(item.label)
            pending_resume = options.resume_path if "resume" not in uploaded else None
            pending_cover = options.cover_letter_path if "cover_letter" not in uploaded else None
            if pending_resume or pending_cover:
                uploaded.update(await upload_documents(session.forms, pending_resume, pending_cover))

            buttons = await session.forms.list_buttons()
            submit = find_button(buttons, SUBMIT_PATTERNS)
            if submit is not None:
                return await self._finish_at_submit(session, options, run_dir, submit.key, filled, fallbacks)

            next_button = find_button(buttons, NEXT_PATTERNS)
            if next_button is None:
                if options.should_submit:
                    result = self._result(
                        "failed", "no submit or next control found", filled, fallbacks, failure_category="no-submit-control"
                    )
                else:
                    result = self._result("needs_review", "no submit control found; finish manually", filled, fallbacks)
                return await self._with_artifacts(session, run_dir, "no-submit-control", result)

            signature = "|".join([await session.forms.current_url(), next_button.text, *report.labels])
            verdict = steps.record(signature)
            if verdict != "continue":
                reason = "form stuck: same step repeated" if verdict == "stuck" else "form stuck: step ceiling reached"
                logger.warning("%s for %s after %s steps", reason, job.job_id, steps.steps)
                result = self._result("failed", reason, filled, fallbacks, failure_category="stuck")
                return await self._with_artifacts(session, run_dir, "stuck", result)

            await session.forms.click(next_button.key)
            await session.forms.wait(self.settings.form_step_delay_ms)

    async def _finish_at_submit(
        self,
        session: BrowserSession,
        options: ApplyOptions,
        run_dir: Path,
        submit_key: str,
        filled: dict[str, str],
        fallbacks: list[str],
    ) -> ApplyResult:
        if not options.should_submit:
            reason = "dry run: stopped before submit" if options.dry_run else "assisted mode: review and submit manually"
            result = self._result("needs_review", reason, filled, fallbacks)
            return await self._with_artifacts(session, run_dir, "review", result)

        await session.forms.click(submit_key)
        await session.forms.wait(self.settings.form_step_delay_ms)

        friction = await browser.detect_friction(session)
        if friction is not Friction.NONE:
            return await self._blocked(session, run_dir, friction, "after submit", filled, fallbacks)

        if await self._matches(session, self.success_patterns):
            return self._result("submitted", "application submitted", filled, fallbacks)

        result = self._result(
            "failed", "submit clicked but no confirmation detected", filled, fallbacks, failure_category="submit-unconfirmed"
        )
        return await self._with_artifacts(session, run_dir, "submit-unconfirmed", result)

    async def _matches(self, session: BrowserSession, patterns: list[re.Pattern[str]]) -> bool:
        text = " ".join((await session.forms.body_text()).lower().split())
        return any(pattern.search(text) for pattern in patterns)

    async def _blocked(
        self,
        session: BrowserSession,
        run_dir: Path,
        friction: Friction,
        where: str,
        filled: dict[str, str] | None = None,
        fallbacks: list[str] | None = None,
    ) -> ApplyResult:
        result = self._result(
            "blocked",
            f"{friction.value} detected {where}; needs a human",
            filled or {},
            fallbacks or [],
            failure_category=friction.value,
        )
        return await self._with_artifacts(session, run_dir, friction.value, result)

    @staticmethod
    def _result(
        status: str,
        reason: str,
        filled: dict[str, str],
        fallbacks: list[str],
        failure_category: str = "",
    ) -> ApplyResult:
        notes = f"filled {len(filled)} field(s)"
        if fallbacks:
            notes += f"; fallback answers for: {', '.join(fallbacks)}"
        return ApplyResult(
            status=status,
            reason=reason,
            notes=notes,
            failure_category=failure_category,
            filled_fields=sorted(filled),
            fallback_fields=fallbacks,
        )

    @staticmethod
    async def _with_artifacts(session: BrowserSession, run_dir: Path, label: str, result: ApplyResult) -> ApplyResult:
        captured = await browser.capture_artifacts(session, run_dir, label)
        return result.model_copy(update={"artifacts": [*result.artifacts, *captured.paths]})

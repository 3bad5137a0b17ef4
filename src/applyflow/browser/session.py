from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from playwright.async_api import async_playwright

from applyflow.browser.forms import FormDriver, PlaywrightFormDriver
from applyflow.config import Settings
from applyflow.core.retry import AttemptPolicy, retry_async
from applyflow.db.base import utcnow
from applyflow.types import CapturedArtifacts, Friction

logger = logging.getLogger(__name__)

CAPTCHA_FRAME_HOSTS = ("hcaptcha.com", "arkoselabs.com", "funcaptcha.com")
BOT_CHECK_FRAME_HOSTS = ("challenges.cloudflare.com",)

CAPTCHA_TEXT = re.compile(r"\b(re|h)?captcha\b|i'?m not a robot|i am not a robot")
TWO_FACTOR_TEXT = re.compile(
    r"two[- ]factor|\b2fa\b|verification code|one[- ]time (pass)?code|security code|enter the code we sent"
)
BOT_CHECK_TEXT = re.compile(
    r"are you (a )?human|are you a robot|verify (that )?you are (a )?human|checking your browser|unusual traffic"
    r"|press and hold"
)
# Greenhouse, Lever and others print this under every form that loads invisible reCAPTCHA
RECAPTCHA_NOTICE = re.compile(r"(this site is )?protected by recaptcha[^.\n]*")


@dataclass(slots=True)
class LaunchOptions:
    headless: bool = True
    slow_mo_ms: int = 0
    nav_timeout_sec: int = 30
    action_timeout_sec: int = 10
    viewport_width: int = 1280
    viewport_height: int = 900
    user_agent: str = ""
    user_data_dir: Path | None = None

    @classmethod
    def from_settings(cls, settings: Settings, *, persistent: bool = False) -> "LaunchOptions":
        return cls(
            headless=settings.browser_headless,
            slow_mo_ms=settings.browser_slow_mo_ms,
            nav_timeout_sec=settings.browser_nav_timeout_sec,
            action_timeout_sec=settings.browser_action_timeout_sec,
            viewport_width=settings.browser_viewport_width,
            viewport_height=settings.browser_viewport_height,
            user_agent=settings.http_user_agent,
            user_data_dir=settings.browser_user_data_dir if persistent else None,
        )


@dataclass(slots=True)
class BrowserSession:
    page: Any
    forms: FormDriver
    context: Any = None
    browser: Any = None
    playwright: Any = None

    async def close(self) -> None:
        for resource in [self.context, self.browser]:
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as exc:
                logger.warning("Failed to close browser resource: %s", exc)
        if self.playwright is not None:
            await self.playwright.stop()


Launcher = Callable[[LaunchOptions], Awaitable[BrowserSession]]


async def launch(options: LaunchOptions) -> BrowserSession:
    playwright = await async_playwright().start()
    browser = None
    try:
        viewport = {"width": options.viewport_width, "height": options.viewport_height}
        if options.user_data_dir is not None:
            user_data_dir = Path(options.user_data_dir).expanduser().resolve()
            user_data_dir.mkdir(parents=True, exist_ok=True)
            context = await playwright.chromium.launch_persistent_context(
                str(user_data_dir),
                headless=options.headless,
                slow_mo=options.slow_mo_ms,
                viewport=viewport,
                user_agent=options.user_agent or None,
            )
            page = context.pages[0] if context.pages else await context.new_page()
        else:
            browser = await playwright.chromium.launch(headless=options.headless, slow_mo=options.slow_mo_ms)
            context = await browser.new_context(viewport=viewport, user_agent=options.user_agent or None)
            page = await context.new_page()

        page.set_default_navigation_timeout(options.nav_timeout_sec * 1000)
        page.set_default_timeout(options.action_timeout_sec * 1000)
    except Exception:
        if browser is not None:
            await browser.close()
        await playwright.stop()
        raise

    return BrowserSession(
        page=page,
        forms=PlaywrightFormDriver(page),
        context=context,
        browser=browser,
        playwright=playwright,
    )


async def navigate_with_retries(
    session: BrowserSession,
    url: str,
    *,
    retries: int,
    delay_ms: int,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> bool:
    """Navigate, retrying transient failures. Returns False once attempts run out."""
    policy = AttemptPolicy(max_attempts=retries + 1, delay_sec=delay_ms / 1000, backoff_factor=2.0)

    async def _goto() -> None:
        await session.page.goto(url, wait_until="domcontentloaded")

    try:
        await retry_async(_goto, policy, label=f"navigate {url}", sleep=sleep)
    except Exception as exc:
        logger.warning("Navigation to %s failed: %s", url, exc)
        return False
    return True


def _safe_label(label: str) -> str:
    return re.sub(r"[^a-z0-9_-]+", "-", label.lower()).strip("-") or "page"


async def capture_artifacts(session: BrowserSession, run_dir: Path, label: str) -> CapturedArtifacts:
    """Save a full-page screenshot and the page HTML; capture errors are logged, never raised."""
    run_dir = Path(run_dir)
    run_dir.mkdir(parents=True, exist_ok=True)
    stem = f"{_safe_label(label)}-{utcnow():%H%M%S%f}"
    captured = CapturedArtifacts()

    screenshot_path = run_dir / f"{stem}.png"
    try:
        await session.page.screenshot(path=str(screenshot_path), full_page=True)
        captured.screenshot_path = str(screenshot_path)
    except Exception as exc:
        logger.warning("Screenshot capture failed for %s: %s", label, exc)

    html_path = run_dir / f"{stem}.html"
    try:
        html_path.write_text(await session.page.content(), encoding="utf-8")
        captured.html_path = str(html_path)
    except Exception as exc:
        logger.warning("HTML capture failed for %s: %s", label, exc)

    return captured


def write_error_note(run_dir: Path, label: str, message: str) -> str:
    """Record a failure that happened before any page existed to capture."""
    run_dir = Path(run_dir)
    run_dir.mkdir(parents=True, exist_ok=True)
    note = run_dir / f"{_safe_label(label)}-{utcnow():%H%M%S%f}.txt"
    note.write_text(message.rstrip() + "\n", encoding="utf-8")
    return str(note)


def classify_friction(text: str, frame_urls: list[str]) -> Friction:
    for url in frame_urls:
        lowered = url.lower()
        if "recaptcha" in lowered and "/anchor" in lowered and "size=invisible" not in lowered:
            return Friction.CAPTCHA
        if any(host in lowered for host in CAPTCHA_FRAME_HOSTS):
            return Friction.CAPTCHA

    body = RECAPTCHA_NOTICE.sub(" ", text.lower())
    if CAPTCHA_TEXT.search(body):
        return Friction.CAPTCHA
    if TWO_FACTOR_TEXT.search(body):
        return Friction.TWO_FACTOR
    if BOT_CHECK_TEXT.search(body):
        return Friction.BOT_CHECK

    for url in frame_urls:
        if any(host in url.lower() for host in BOT_CHECK_FRAME_HOSTS):
            return Friction.BOT_CHECK
    return Friction.NONE


async def detect_friction(session: BrowserSession) -> Friction:
    text = await session.forms.body_text()
    frame_urls = await session.forms.frame_urls()
    friction = classify_friction(text, frame_urls)
    if friction is not Friction.NONE:
        logger.info("Friction detected: %s", friction.value)
    return friction

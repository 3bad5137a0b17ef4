from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from applyflow.browser.session import BrowserSession
from applyflow.config import Settings
from applyflow.db.init import ensure_data_directories, init_database
from applyflow.db.session import create_db_engine, create_session_factory
from applyflow.db.tracker import Tracker
from applyflow.types import ApplicantProfile, FormButton, FormField


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    data_dir = tmp_path / "data"
    return Settings(
        _env_file=None,
        app_env="test",
        database_url=f"sqlite:///{tmp_path / 'applyflow.db'}",
        data_dir=data_dir,
        runs_dir=data_dir / "runs",
        applications_dir=data_dir / "applications",
        reports_dir=data_dir / "reports",
        profile_path=tmp_path / "profile.md",
        profile_json_path=tmp_path / "profile.json",
        base_resume_path=tmp_path / "resume.md",
        browser_user_data_dir=data_dir / "browser_profile",
        openai_api_key="",
        local_llm_enabled=False,
        pdf_enabled=False,
        nav_retries=0,
        nav_retry_delay_ms=0,
        form_step_delay_ms=0,
        apply_delay_min_sec=0,
        apply_delay_max_sec=0,
    )


@pytest.fixture
def session_factory(settings: Settings):
    ensure_data_directories(settings)
    engine = create_db_engine(settings)
    init_database(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def tracker(db) -> Tracker:
    return Tracker(db)


@pytest.fixture
def applicant() -> ApplicantProfile:
    return ApplicantProfile(
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        phone="+44 20 7946 0000",
        location="London, UK",
        linkedin_url="https://www.linkedin.com/in/ada",
        current_company="Analytical Engines Ltd",
        current_title="Staff Engineer",
        work_authorization="Yes",
        requires_sponsorship="No",
        skills=["Python", "SQL", "Playwright"],
        answers={"How did you hear about us": "Company website"},
    )


@pytest.fixture
def profile_file(settings: Settings) -> Path:
    payload = {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "email": "ada@example.com",
        "phone": "+44 20 7946 0000",
        "linkedinHandle": "ada",
        "skills": "Python, SQL",
    }
    settings.profile_json_path.write_text(json.dumps(payload), encoding="utf-8")
    return settings.profile_json_path


@dataclass
class FakeScreen:
    text: str = ""
    url: str = "https://jobs.example.com/apply"
    fields: list[FormField] = field(default_factory=list)
    buttons: list[FormButton] = field(default_factory=list)
    file_inputs: list[FormField] = field(default_factory=list)
    frame_urls: list[str] = field(default_factory=list)
    goes_to: dict[str, int] = field(default_factory=dict)


class FakeForms:
    """In-memory stand-in for the page DOM; clicking a button can switch screens."""

    def __init__(self, screens: list[FakeScreen]):
        self.screens = screens
        self.index = 0
        self.values: dict[str, str] = {}
        self.files: dict[str, str] = {}
        self.clicked: list[str] = []

    @property
    def screen(self) -> FakeScreen:
        return self.screens[self.index]

    async def collect_fields(self) -> list[FormField]:
        return [
            item.model_copy(update={"value": self.values.get(item.key, item.value)}) for item in self.screen.fields
        ]

    async def set_value(self, key: str, value: str) -> bool:
        self.values[key] = value
        return True

    async def list_file_inputs(self) -> list[FormField]:
        return list(self.screen.file_inputs)

    async def set_file(self, key: str, path: Path) -> None:
        self.files[key] = str(path)

    async def list_buttons(self) -> list[FormButton]:
        return list(self.screen.buttons)

    async def click(self, key: str) -> None:
        self.clicked.append(key)
        if key in self.screen.goes_to:
            self.index = self.screen.goes_to[key]

    async def body_text(self) -> str:
        return self.screen.text

    async def frame_urls(self) -> list[str]:
        return list(self.screen.frame_urls)

    async def current_url(self) -> str:
        return self.screen.url

    async def wait(self, ms: int) -> None:
        return None


class FakePage:
    def __init__(self, failing_navigations: int = 0):
        self.failing_navigations = failing_navigations
        self.visited: list[str] = []

    async def goto(self, url: str, wait_until: str | None = None) -> None:
        if self.failing_navigations > 0:
            self.failing_navigations -= 1
            raise TimeoutError(f"timed out loading {url}")
        self.visited.append(url)

    async def screenshot(self, path: str, full_page: bool = False) -> None:
        Path(path).write_bytes(b"\x89PNG fake")

    async def content(self) -> str:
        return "<html><body>captured</body></html>"


@pytest.fixture
def fake_browser():
    """Build a launcher that hands out a session backed by FakeForms and FakePage.

    Screens are FakeScreen keyword dicts; ``goes_to`` maps a button key to the
    index of the screen shown after clicking it.
    """

    def _build(screens: list[dict], failing_navigations: int = 0):
        forms = FakeForms([FakeScreen(**screen) for screen in screens])
        page = FakePage(failing_navigations=failing_navigations)

        async def launcher(options) -> BrowserSession:
            return BrowserSession(page=page, forms=forms)

        return launcher, forms, page

    return _build

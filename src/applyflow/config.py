from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "applyflow"
    app_env: str = "development"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/applyflow.db"
    data_dir: Path = Path("./data")
    runs_dir: Path = Path("./data/runs")
    applications_dir: Path = Path("./data/applications")
    reports_dir: Path = Path("./data/reports")
    profile_path: Path = Path("./profile.md")
    profile_json_path: Path = Path("./data/profile.json")
    base_resume_path: Path = Path("./data/resume.md")

    default_apply_mode: str = "assisted"
    dry_run: bool = False

    http_timeout_sec: int = 10
    http_user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    )
    discovery_limit: int = 25

    browser_headless: bool = True
    browser_slow_mo_ms: int = 0
    browser_nav_timeout_sec: int = 30
    browser_action_timeout_sec: int = 10
    browser_user_data_dir: Path = Path("./data/browser_profile")
    browser_viewport_width: int = 1280
    browser_viewport_height: int = 900

    nav_retries: int = 2
    nav_retry_delay_ms: int = 2000
    form_max_steps: int = 12
    form_stuck_threshold: int = 3
    form_step_delay_ms: int = 800

    apply_delay_min_sec: float = 5.0
    apply_delay_max_sec: float = 15.0
    batch_limit: int = 10

    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model_writer: str = "gpt-5-mini"
    openai_timeout_sec: int = 60

    local_llm_enabled: bool = False
    local_llm_base_url: str = "http://localhost:11434/v1"
    local_llm_api_key: str = "local"
    local_llm_model: str = "qwen2.5:14b-instruct"
    local_llm_timeout_sec: int = 90

    llm_writer_provider: str = "openai"

    pdf_enabled: bool = True

    ranking_keywords: str = "remote:50,senior:20,python:15,ai:20,machine learning:20"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("default_apply_mode")
    @classmethod
    def validate_apply_mode(cls, value: str) -> str:
        allowed = {"assisted", "auto"}
        if value not in allowed:
            raise ValueError(f"default_apply_mode must be one of {sorted(allowed)}")
        return value

    @field_validator("llm_writer_provider")
    @classmethod
    def validate_writer_provider(cls, value: str) -> str:
        allowed = {"openai", "local"}
        if value not in allowed:
            raise ValueError(f"llm_writer_provider must be one of {sorted(allowed)}")
        return value

    @model_validator(mode="after")
    def validate_bounds(self) -> "Settings":
        if self.form_max_steps < 1 or self.form_stuck_threshold < 2:
            raise ValueError("form_max_steps must be >= 1 and form_stuck_threshold >= 2")
        if self.apply_delay_min_sec > self.apply_delay_max_sec:
            raise ValueError("apply_delay_min_sec must not exceed apply_delay_max_sec")
        return self

    @property
    def ranking_weights(self) -> dict[str, int]:
        weights: dict[str, int] = {}
        for item in self.ranking_keywords.split(","):
            term, _, weight = item.partition(":")
            term = term.strip().lower()
            if not term:
                continue
            try:
                weights[term] = int(weight.strip() or "0")
            except ValueError:
                continue
        return weights


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

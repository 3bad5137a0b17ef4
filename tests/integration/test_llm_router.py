from __future__ import annotations

from applyflow.config import Settings
from applyflow.llm.router import LLMRouter
from applyflow.types import ApplicantProfile, JobSummary


class StubProvider:
    def __init__(self, name: str, payload=None, error: Exception | None = None):
        self.config = type("Config", (), {"name": name})()
        self.payload = payload
        self.error = error
        self.prompts: list[str] = []

    def complete_json(self, prompt: str) -> dict:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.payload


def _inputs() -> tuple[ApplicantProfile, JobSummary]:
    profile = ApplicantProfile(first_name="Ada", last_name="Lovelace", email="ada@example.com", skills=["Python"])
    job = JobSummary(
        job_id="lever-1",
        job_url="https://jobs.lever.co/globex/1",
        platform="lever",
        title="Software Engineer",
        company="Globex",
        description="Requirements: Python, SQL, communication.",
    )
    return profile, job


def test_llm_router_falls_back_to_heuristic_when_no_provider_available() -> None:
    settings = Settings(_env_file=None, openai_api_key="", local_llm_enabled=False)
    router = LLMRouter(settings=settings)
    profile, job = _inputs()

    documents = router.tailor_documents(profile=profile, job=job)

    assert documents.metadata["strategy"] == "heuristic_fallback"
    assert "Software Engineer" in documents.resume_markdown
    assert "Dear Hiring Team at Globex," in documents.cover_letter_markdown


def test_llm_router_uses_next_provider_after_failure(monkeypatch) -> None:
    settings = Settings(_env_file=None, openai_api_key="", local_llm_enabled=False)
    router = LLMRouter(settings=settings)
    failing = StubProvider("openai", error=TimeoutError("upstream timeout"))
    working = StubProvider(
        "local",
        payload={"resume_markdown": "# Ada Lovelace\n", "cover_letter_markdown": "Dear Globex team,\n"},
    )
    monkeypatch.setattr(router.pool, "available", lambda: [failing, working])
    profile, job = _inputs()

    documents = router.tailor_documents(profile=profile, job=job, base_resume="## Experience")

    assert documents.cover_letter_markdown == "Dear Globex team,\n"
    assert documents.metadata["strategy"] == "llm:local"
    assert "Globex" in working.prompts[0]
    assert "## Experience" in working.prompts[0]


def test_llm_router_rejects_incomplete_payloads() -> None:
    settings = Settings(_env_file=None, openai_api_key="", local_llm_enabled=False)
    router = LLMRouter(settings=settings)
    router.pool.available = lambda: [StubProvider("openai", payload={"resume_markdown": "only half"})]
    profile, job = _inputs()

    documents = router.tailor_documents(profile=profile, job=job)

    assert documents.metadata["strategy"] == "heuristic_fallback"

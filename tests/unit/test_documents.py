from __future__ import annotations

from datetime import date
from pathlib import Path

from applyflow.documents import builder as builder_module
from applyflow.documents.builder import DocumentBuilder
from applyflow.documents.pdf import render_markdown_pdf
from applyflow.llm.router import heuristic_tailored_documents
from applyflow.types import JobSummary


def _job() -> JobSummary:
    return JobSummary(
        job_id="greenhouse-abc",
        job_url="https://boards.greenhouse.io/acme/jobs/1",
        platform="greenhouse",
        title="Data Engineer",
        company="Acme",
        location="Remote",
        description="We need SQL and Airflow experience.",
    )


def test_heuristic_documents_lead_with_matching_skills(applicant) -> None:
    documents = heuristic_tailored_documents(
        profile=applicant, job=_job(), base_resume="## Experience\n- Built pipelines", today=date(2026, 10, 5)
    )

    assert documents.resume_markdown.startswith("# Ada Lovelace\n")
    assert "## Target Role: Data Engineer" in documents.resume_markdown
    assert "SQL, Python, Playwright" in documents.resume_markdown
    assert documents.resume_markdown.rstrip().endswith("- Built pipelines")

    assert documents.cover_letter_markdown.startswith("October 5, 2026\n")
    assert "Dear Hiring Team at Acme," in documents.cover_letter_markdown
    assert "I am applying for the Data Engineer position." in documents.cover_letter_markdown
    assert documents.metadata == {"strategy": "heuristic_fallback", "matched_skills": ["SQL"]}


def test_render_markdown_pdf_writes_a_pdf(tmp_path: Path) -> None:
    output = render_markdown_pdf(
        "# Ada Lovelace\n\n## Skills\n- Python\n- “Smart quotes” – and dashes\n\nPlain paragraph.",
        tmp_path / "out" / "resume.pdf",
        title="Resume",
    )
    assert output.exists()
    assert output.read_bytes().startswith(b"%PDF")


def test_builder_writes_markdown_and_pdf(settings, applicant, tmp_path: Path) -> None:
    settings.pdf_enabled = True
    settings.base_resume_path.write_text("## Experience\n- Analytical engines", encoding="utf-8")

    built = DocumentBuilder(settings).build(_job(), tmp_path / "docs", applicant)

    assert built.pdf_rendered is True
    assert built.resume_path.endswith("resume.pdf")
    assert built.cover_letter_path.endswith("cover-letter.pdf")
    assert "Analytical engines" in Path(built.resume_source_path).read_text(encoding="utf-8")
    assert built.metadata["strategy"] == "heuristic_fallback"


def test_builder_keeps_markdown_when_pdf_rendering_fails(settings, applicant, tmp_path: Path, monkeypatch) -> None:
    settings.pdf_enabled = True

    def broken_render(markdown, output_path, *, title=""):
        raise RuntimeError("font missing")

    monkeypatch.setattr(builder_module, "render_markdown_pdf", broken_render)

    built = DocumentBuilder(settings).build(_job(), tmp_path / "docs", applicant)

    assert built.pdf_rendered is False
    assert built.resume_path.endswith("resume.md")
    assert "Dear Hiring Team at Acme," in Path(built.cover_letter_path).read_text(encoding="utf-8")

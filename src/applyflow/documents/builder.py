from __future__ import annotations

import logging
from pathlib import Path

from applyflow.config import Settings
from applyflow.documents.pdf import render_markdown_pdf
from applyflow.llm.router import LLMRouter
from applyflow.types import ApplicantProfile, BuiltDocuments, JobSummary

logger = logging.getLogger(__name__)


class DocumentBuilder:
    """Writes a tailored resume and cover letter for one job into its own directory."""

    def __init__(self, settings: Settings, router: LLMRouter | None = None):
        self.settings = settings
        self.router = router or LLMRouter(settings)

    def build(self, job: JobSummary, output_dir: Path, profile: ApplicantProfile) -> BuiltDocuments:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        base_resume = ""
        base_path = Path(self.settings.base_resume_path)
        if base_path.exists():
            base_resume = base_path.read_text(encoding="utf-8")

        tailored = self.router.tailor_documents(profile=profile, job=job, base_resume=base_resume)

        resume_source = output_dir / "resume.md"
        cover_source = output_dir / "cover-letter.md"
        resume_source.write_text(tailored.resume_markdown, encoding="utf-8")
        cover_source.write_text(tailored.cover_letter_markdown, encoding="utf-8")

        resume_path, cover_path, rendered = resume_source, cover_source, False
        if self.settings.pdf_enabled:
            try:
                resume_path = render_markdown_pdf(
                    tailored.resume_markdown,
                    output_dir / "resume.pdf",
                    title=f"{profile.display_name} - {job.title}",
                )
                cover_path = render_markdown_pdf(
                    tailored.cover_letter_markdown,
                    output_dir / "cover-letter.pdf",
                    title=f"Cover letter - {job.company}",
                )
                rendered = True
            except Exception as exc:
                logger.warning("PDF rendering failed for %s (%s); keeping markdown documents", job.job_id, exc)
                resume_path, cover_path = resume_source, cover_source

        logger.info("Built documents for %s in %s", job.job_id, output_dir)
        return BuiltDocuments(
            resume_path=str(resume_path),
            cover_letter_path=str(cover_path),
            resume_source_path=str(resume_source),
            pdf_rendered=rendered,
            metadata=tailored.metadata,
        )

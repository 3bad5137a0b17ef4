from __future__ import annotations

import json
import logging
from datetime import date

from applyflow.config import Settings
from applyflow.llm.prompts import TAILOR_DOCS_PROMPT
from applyflow.llm.providers import ProviderPool
from applyflow.types import ApplicantProfile, JobSummary, TailoredDocuments

logger = logging.getLogger(__name__)


class LLMRouter:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.pool = ProviderPool(settings)

    def tailor_documents(
        self,
        *,
        profile: ApplicantProfile,
        job: JobSummary,
        base_resume: str = "",
    ) -> TailoredDocuments:
        prompt = TAILOR_DOCS_PROMPT.format(
            profile_json=json.dumps(profile.model_dump(), ensure_ascii=True),
            base_resume=base_resume[:12000],
            title=job.title,
            company=job.company,
            location=job.location,
            description=job.description[:12000],
        )

        for provider in self.pool.available():
            try:
                data = provider.complete_json(prompt)
            except Exception as exc:
                logger.warning("LLM tailoring failed provider=%s error=%s", provider.config.name, exc)
                continue
            if not data:
                continue
            try:
                documents = TailoredDocuments.model_validate(data)
            except ValueError:
                logger.warning("Invalid tailored document payload from %s", provider.config.name)
                continue
            documents.metadata.setdefault("strategy", f"llm:{provider.config.name}")
            return documents

        return heuristic_tailored_documents(profile=profile, job=job, base_resume=base_resume)


def heuristic_tailored_documents(
    *,
    profile: ApplicantProfile,
    job: JobSummary,
    base_resume: str = "",
    today: date | None = None,
) -> TailoredDocuments:
    name = profile.display_name or "Candidate"
    role = job.title or "the open role"
    company = job.company or "your company"
    contact = " | ".join(
        item for item in [profile.email, profile.phone, profile.location, profile.linkedin_url] if item
    )

    description = job.description.lower()
    matched_skills = [skill for skill in profile.skills if skill.lower() in description]
    other_skills = [skill for skill in profile.skills if skill not in matched_skills]

    resume_lines = [f"# {name}", ""]
    if contact:
        resume_lines += [contact, ""]
    resume_lines += [f"## Target Role: {role}", ""]
    if profile.summary:
        resume_lines += ["## Summary", profile.summary, ""]
    if profile.skills:
        resume_lines += ["## Skills", ", ".join(matched_skills + other_skills), ""]
    if base_resume.strip():
        resume_lines += [base_resume.strip()]

    issued = (today or date.today()).strftime("%B %d, %Y").replace(" 0", " ")
    focus = ", ".join(matched_skills[:4])
    cover_lines = [
        issued,
        "",
        f"Hiring Team, {company}",
        *([job.location] if job.location else []),
        "",
        f"Dear Hiring Team at {company},",
        "",
        f"I am applying for the {role} position.",
    ]
    if focus:
        cover_lines.append(f"My recent work centres on {focus}, which lines up with what this role asks for.")
    if profile.current_title and profile.current_company:
        cover_lines.append(f"I currently work as {profile.current_title} at {profile.current_company}.")
    cover_lines += [
        "I would welcome the chance to discuss how I can contribute to your team.",
        "",
        "Sincerely,",
        name,
        *([contact] if contact else []),
    ]

    return TailoredDocuments(
        resume_markdown="\n".join(resume_lines).strip() + "\n",
        cover_letter_markdown="\n".join(cover_lines).strip() + "\n",
        metadata={"strategy": "heuristic_fallback", "matched_skills": matched_skills},
    )

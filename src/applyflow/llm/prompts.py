from __future__ import annotations

TAILOR_DOCS_PROMPT = """
You are tailoring a candidate's resume and cover letter to one job posting.
Use only facts present in the profile and base resume. Never invent employers,
titles, dates, degrees or metrics.
Return strict JSON with keys:
- resume_markdown: string
- cover_letter_markdown: string
- metadata: object

Profile JSON:
{profile_json}

Base resume (markdown, may be empty):
{base_resume}

Job:
Title: {title}
Company: {company}
Location: {location}
Description:
{description}
""".strip()

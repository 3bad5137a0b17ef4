from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from applyflow.config import Settings
from applyflow.core.errors import ConfigurationError
from applyflow.types import ApplicantProfile

logger = logging.getLogger(__name__)

FIELD_ALIASES = {
    "firstname": "first_name",
    "first": "first_name",
    "lastname": "last_name",
    "last": "last_name",
    "name": "full_name",
    "fullname": "full_name",
    "email": "email",
    "emailaddress": "email",
    "phone": "phone",
    "phonenumber": "phone",
    "mobile": "phone",
    "location": "location",
    "city": "city",
    "country": "country",
    "linkedin": "linkedin_url",
    "linkedinurl": "linkedin_url",
    "linkedinhandle": "linkedin_url",
    "github": "github_url",
    "githuburl": "github_url",
    "website": "website_url",
    "websiteurl": "website_url",
    "portfolio": "website_url",
    "currentcompany": "current_company",
    "company": "current_company",
    "currenttitle": "current_title",
    "title": "current_title",
    "headline": "current_title",
    "yearsexperience": "years_experience",
    "yearsofexperience": "years_experience",
    "salaryexpectation": "salary_expectation",
    "salary": "salary_expectation",
    "noticeperiod": "notice_period",
    "workauthorization": "work_authorization",
    "requiressponsorship": "requires_sponsorship",
    "sponsorship": "requires_sponsorship",
    "willingtorelocate": "willing_to_relocate",
    "relocation": "willing_to_relocate",
    "summary": "summary",
    "skills": "skills",
    "answers": "answers",
}

BULLET = re.compile(r"^\s*[-*]\s+\*\*(?P<key>[^*]+?):?\*\*:?\s*(?P<value>.*)$")
HEADING = re.compile(r"^#{1,6}\s+(?P<title>.+?)\s*$")


def _alias(key: str) -> str | None:
    return FIELD_ALIASES.get(re.sub(r"[^a-z]", "", key.lower()))


def _normalize(values: dict[str, Any]) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for key, value in values.items():
        target = _alias(key)
        if target is None or value in (None, ""):
            continue
        if target == "skills":
            if isinstance(value, str):
                data[target] = [item.strip() for item in value.split(",") if item.strip()]
            elif isinstance(value, (list, tuple)):
                data[target] = [str(item).strip() for item in value if str(item).strip()]
            else:
                raise ConfigurationError(f"profile field {key!r} must be a list or a comma-separated string")
        elif target == "answers":
            if not isinstance(value, dict):
                raise ConfigurationError(f"profile field {key!r} must map questions to answers")
            data[target] = {str(k): str(v) for k, v in value.items()}
        elif isinstance(value, bool):
            data[target] = "Yes" if value else "No"
        else:
            data[target] = str(value).strip()

    linkedin = data.get("linkedin_url", "")
    if linkedin and not linkedin.startswith("http"):
        data["linkedin_url"] = f"https://www.linkedin.com/in/{linkedin.strip('/@')}"
    github = data.get("github_url", "")
    if github and not github.startswith("http"):
        data["github_url"] = f"https://github.com/{github.strip('/@')}"
    return data


def parse_profile_markdown(text: str) -> dict[str, Any]:
    """Read ``- **Label:** value`` bullets; bullets under an "answers" heading become custom answers."""
    values: dict[str, Any] = {}
    answers: dict[str, str] = {}
    in_answers = False
    summary_lines: list[str] = []
    in_summary = False

    for line in text.splitlines():
        heading = HEADING.match(line)
        if heading:
            title = heading.group("title").lower()
            in_answers = "answer" in title or "question" in title
            in_summary = "summary" in title
            continue

        bullet = BULLET.match(line)
        if bullet:
            key, value = bullet.group("key").strip(), bullet.group("value").strip()
            if in_answers:
                answers[key] = value
            else:
                values[key] = value
            continue

        if in_summary and line.strip():
            summary_lines.append(line.strip())

    if answers:
        values["answers"] = answers
    if summary_lines and "summary" not in values:
        values["summary"] = " ".join(summary_lines)
    return values


def load_profile(settings: Settings) -> ApplicantProfile:
    json_path = Path(settings.profile_json_path)
    markdown_path = Path(settings.profile_path)

    if json_path.exists():
        try:
            raw = json.loads(json_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"profile {json_path} is not valid JSON: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigurationError(f"profile {json_path} must hold a JSON object")
        source = json_path
    elif markdown_path.exists():
        raw = parse_profile_markdown(markdown_path.read_text(encoding="utf-8"))
        source = markdown_path
    else:
        raise ConfigurationError(f"no applicant profile found at {json_path} or {markdown_path}")

    data = _normalize(raw)
    full_name = data.get("full_name", "")
    if full_name and not data.get("first_name"):
        first, _, last = full_name.partition(" ")
        data["first_name"] = first
        data.setdefault("last_name", last)

    try:
        profile = ApplicantProfile.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"profile {source} is invalid: {exc}") from exc

    if not profile.display_name or not profile.email:
        raise ConfigurationError(f"profile {source} needs at least a name and an email")

    logger.debug("Loaded applicant profile from %s", source)
    return profile

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from applyflow.browser.forms import FormDriver
from applyflow.types import ApplicantProfile, FieldFill, FormButton, FormField, FormOption

logger = logging.getLogger(__name__)

# Ordered; the first pattern that matches a normalized label decides the profile field.
FIELD_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\bfirst name\b|\bgiven name\b|\bforename\b|\bfirstname\b"), "first_name"),
    (re.compile(r"\blast name\b|\bsurname\b|\bfamily name\b|\blastname\b"), "last_name"),
    (re.compile(r"\bpreferred name\b"), "first_name"),
    (re.compile(r"\be ?mail\b"), "email"),
    (re.compile(r"\bphone\b|\bmobile\b|\btelephone\b|\bcell\b"), "phone"),
    (re.compile(r"\blinkedin\b"), "linkedin_url"),
    (re.compile(r"\bgithub\b"), "github_url"),
    (re.compile(r"\bwebsite\b|\bportfolio\b|\bpersonal site\b|\bblog\b"), "website_url"),
    (re.compile(r"\b(current|most recent|present) (company|employer)\b|\bemployer\b|^company( name)?$|^org$"), "current_company"),
    (re.compile(r"\b(current|most recent|present) (job )?(title|role|position)\b|\bjob title\b|^title$"), "current_title"),
    (re.compile(r"\byears\b.*\bexperience\b|\bexperience\b.*\byears\b"), "years_experience"),
    (
        re.compile(r"\b(salary|compensation|pay)\b.*\b(expectation|requirement|expected|desired)s?\b|\b(expected|desired) (salary|compensation|pay)\b"),
        "salary_expectation",
    ),
    (re.compile(r"\bnotice period\b|\bearliest start\b|\bstart date\b|\bavailability\b"), "notice_period"),
    (re.compile(r"\bsponsor"), "requires_sponsorship"),
    (
        re.compile(r"\b(authorized|authorised|eligible|legally)\b.*\bwork\b|\bwork (authorization|authorisation|permit)\b|\bright to work\b"),
        "work_authorization",
    ),
    (re.compile(r"\brelocat"), "willing_to_relocate"),
    (re.compile(r"\bcity\b"), "city"),
    (re.compile(r"\bcountry\b"), "country"),
    (re.compile(r"\blocation\b|\bwhere are you based\b|\baddress\b"), "location"),
    (re.compile(r"^(full |legal |your )?name$|\bfull name\b"), "display_name"),
]

TYPE_FALLBACKS = {"email": "email", "tel": "phone", "url": "website_url"}

# Options are classified into the first group with a matching term, so negative
# answers must precede affirmative ones ("i am not" also contains "i am").
OPTION_GROUPS: list[tuple[str, tuple[str, ...]]] = [
    ("decline", ("decline", "prefer not", "do not wish", "not to say", "not to disclose", "rather not")),
    ("no", ("no", "false", "not", "don't", "do not")),
    ("yes", ("yes", "true", "i am", "i do", "i will", "i have", "authorized", "authorised", "eligible")),
    ("female", ("female", "woman")),
    ("male", ("male", "man")),
    ("remote", ("remote", "work from home", "wfh", "anywhere")),
    ("hybrid", ("hybrid",)),
    ("onsite", ("onsite", "on site", "in office", "office")),
]

PLACEHOLDER_OPTIONS = re.compile(r"^(select|choose|please select|please choose|pick)\b|^$|^-+$|^none selected$")

NEXT_PATTERNS = [
    re.compile(r"^(next|continue)\b"),
    re.compile(r"^review( your application)?$"),
    re.compile(r"^save( and)? continue$"),
]
SUBMIT_PATTERNS = [
    re.compile(r"^submit( my| your)?( application)?$"),
    re.compile(r"^send( my)? application$"),
    re.compile(r"^submit\b"),
]
APPLY_PATTERNS = [
    re.compile(r"^apply( now)?$"),
    re.compile(r"^apply (for|to) this (job|position|role)$"),
    re.compile(r"^i m interested$"),
]


def normalize_label(text: str) -> str:
    value = re.sub(r"[^a-z0-9]+", " ", (text or "").lower()).strip()
    value = re.sub(r"\s+required$", "", value)
    return value


def _word_match(term: str, text: str) -> bool:
    return re.search(rf"\b{re.escape(term)}\b", text) is not None


def _option_group(text: str) -> str | None:
    for name, terms in OPTION_GROUPS:
        if any(_word_match(normalize_label(term), text) for term in terms):
            return name
    return None


def resolve_value(profile: ApplicantProfile, label: str, input_type: str = "text") -> str:
    """Pick the profile value for a normalized field label; empty string when none applies."""
    for pattern, attribute in FIELD_RULES:
        if pattern.search(label):
            value = str(getattr(profile, attribute, "") or "")
            if value:
                return value
            break

    for question, answer in profile.answers.items():
        key = normalize_label(question)
        if key and (key == label or key in label):
            return answer

    attribute = TYPE_FALLBACKS.get(input_type)
    if attribute:
        return str(getattr(profile, attribute, "") or "")
    return ""


def real_options(options: list[FormOption]) -> list[FormOption]:
    return [
        option
        for option in options
        if option.value.strip() and not PLACEHOLDER_OPTIONS.search(normalize_label(option.text))
    ]


def choose_option(options: list[FormOption], desired: str) -> FormOption | None:
    """Match a desired answer to a dropdown option: exact, then synonym group, then containment."""
    candidates = real_options(options)
    want = normalize_label(desired)
    if not want or not candidates:
        return None

    for option in candidates:
        if normalize_label(option.text) == want or normalize_label(option.value) == want:
            return option

    group = _option_group(want)
    if group:
        for option in candidates:
            if _option_group(normalize_label(option.text)) == group:
                return option

    for option in candidates:
        text = normalize_label(option.text)
        if text and (want in text or text in want):
            return option
    return None


def find_button(buttons: list[FormButton], patterns: list[re.Pattern[str]]) -> FormButton | None:
    for pattern in patterns:
        for button in buttons:
            if pattern.search(normalize_label(button.text)):
                return button
    return None


def _file_input_text(field_info: FormField) -> str:
    return normalize_label(" ".join([field_info.label, field_info.name, field_info.element_id]))


def pick_file_input(inputs: list[FormField], kind: str) -> FormField | None:
    """Find the upload control for a resume (``kind="resume"``) or a cover letter."""
    if kind == "resume":
        for item in inputs:
            text = _file_input_text(item)
            if re.search(r"\b(resume|cv|curriculum)\b", text) and "cover" not in text:
                return item
        others = [item for item in inputs if "cover" not in _file_input_text(item)]
        return others[0] if len(others) == 1 else None

    for item in inputs:
        if "cover" in _file_input_text(item):
            return item
    return None


@dataclass(slots=True)
class FillReport:
    labels: list[str] = field(default_factory=list)
    fills: list[FieldFill] = field(default_factory=list)

    @property
    def fallbacks(self) -> list[FieldFill]:
        return [item for item in self.fills if item.fallback]


class FormFiller:
    async def fill(self, driver: FormDriver, profile: ApplicantProfile) -> FillReport:
        report = FillReport()
        for control in await driver.collect_fields():
            label = normalize_label(control.label)
            report.labels.append(label)
            if control.value.strip() and control.tag != "select":
                continue

            desired = resolve_value(profile, label, control.input_type)
            if control.tag == "select":
                current = next((opt for opt in real_options(control.options) if opt.value == control.value), None)
                if current is not None:
                    continue
                fill = self._choose(control, label, desired)
                if fill is None:
                    continue
            else:
                if not desired:
                    continue
                fill = FieldFill(key=control.key, label=label, value=desired)

            if await driver.set_value(control.key, fill.value):
                report.fills.append(fill)
            else:
                logger.debug("Field %s disappeared before it could be filled", label)
        return report

    @staticmethod
    def _choose(control: FormField, label: str, desired: str) -> FieldFill | None:
        option = choose_option(control.options, desired) if desired else None
        if option is not None:
            return FieldFill(key=control.key, label=label, value=option.value)
        if not control.required:
            return None

        options = real_options(control.options)
        if not options:
            return None
        logger.info("No answer for required dropdown %r; using first option %r", label, options[0].text)
        return FieldFill(key=control.key, label=label, value=options[0].value, fallback=True)


async def upload_documents(
    driver: FormDriver,
    resume_path: Path | None,
    cover_letter_path: Path | None = None,
) -> list[str]:
    inputs = await driver.list_file_inputs()
    if not inputs:
        return []

    uploaded: list[str] = []
    for kind, path in [("resume", resume_path), ("cover_letter", cover_letter_path)]:
        if path is None or not Path(path).exists():
            continue
        target = pick_file_input(inputs, kind)
        if target is None:
            continue
        await driver.set_file(target.key, Path(path))
        uploaded.append(kind)
        inputs = [item for item in inputs if item.key != target.key]
    return uploaded

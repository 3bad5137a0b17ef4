from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from applyflow.browser.filling import (
    NEXT_PATTERNS,
    SUBMIT_PATTERNS,
    FormFiller,
    choose_option,
    find_button,
    normalize_label,
    pick_file_input,
    resolve_value,
    upload_documents,
)
from applyflow.types import FormButton, FormField, FormOption


def _options(*pairs: tuple[str, str]) -> list[FormOption]:
    return [FormOption(value=value, text=text) for value, text in pairs]


def _file_input(key: str, label: str = "", name: str = "") -> FormField:
    return FormField(key=key, tag="input", input_type="file", label=label, name=name)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("First Name *", "first name"),
        ("E-mail address (required)", "e mail address"),
        ("Phone Required", "phone"),
        ("  LinkedIn   Profile URL ", "linkedin profile url"),
    ],
)
def test_normalize_label(raw: str, expected: str) -> None:
    assert normalize_label(raw) == expected


def test_resolve_value_maps_common_labels(applicant) -> None:
    assert resolve_value(applicant, "first name") == "Ada"
    assert resolve_value(applicant, "surname") == "Lovelace"
    assert resolve_value(applicant, "email address") == "ada@example.com"
    assert resolve_value(applicant, "mobile phone") == "+44 20 7946 0000"
    assert resolve_value(applicant, "linkedin profile") == "https://www.linkedin.com/in/ada"
    assert resolve_value(applicant, "current company") == "Analytical Engines Ltd"
    assert resolve_value(applicant, "full name") == "Ada Lovelace"


def test_resolve_value_uses_custom_answers_then_input_type(applicant) -> None:
    assert resolve_value(applicant, "how did you hear about us") == "Company website"
    assert resolve_value(applicant, "contact", input_type="email") == "ada@example.com"
    assert resolve_value(applicant, "favourite colour") == ""


def test_choose_option_prefers_exact_match() -> None:
    options = _options(("", "Select..."), ("uk", "United Kingdom"), ("us", "United States"))
    assert choose_option(options, "United Kingdom").value == "uk"


def test_choose_option_matches_synonym_group() -> None:
    options = _options(("", "Please select"), ("1", "Yes, I am authorized"), ("0", "I am not authorized"))
    assert choose_option(options, "Yes").value == "1"
    assert choose_option(options, "No").value == "0"


def test_choose_option_falls_back_to_containment() -> None:
    options = _options(("a", "Berlin office"), ("b", "London office"))
    assert choose_option(options, "London").value == "b"


def test_choose_option_ignores_placeholders() -> None:
    options = _options(("", "Select one"), ("--", "-----"))
    assert choose_option(options, "Select one") is None


def test_find_button_follows_pattern_priority() -> None:
    buttons = [FormButton(key="b0", text="Back"), FormButton(key="b1", text="Continue"), FormButton(key="b2", text="Submit application")]
    assert find_button(buttons, SUBMIT_PATTERNS).key == "b2"
    assert find_button(buttons, NEXT_PATTERNS).key == "b1"
    assert find_button(buttons[:1], NEXT_PATTERNS) is None


def test_pick_file_input_separates_resume_and_cover_letter() -> None:
    inputs = [_file_input("u0", label="Cover Letter"), _file_input("u1", label="Resume/CV")]
    assert pick_file_input(inputs, "resume").key == "u1"
    assert pick_file_input(inputs, "cover_letter").key == "u0"


def test_pick_file_input_uses_lone_unlabelled_input_for_resume() -> None:
    assert pick_file_input([_file_input("u0", name="attachment")], "resume").key == "u0"
    assert pick_file_input([_file_input("u0"), _file_input("u1")], "resume") is None


class RecordingDriver:
    def __init__(self, fields: list[FormField], file_inputs: list[FormField] | None = None):
        self.fields = fields
        self.file_inputs = file_inputs or []
        self.values: dict[str, str] = {}
        self.files: dict[str, Path] = {}

    async def collect_fields(self) -> list[FormField]:
        return self.fields

    async def set_value(self, key: str, value: str) -> bool:
        self.values[key] = value
        return True

    async def list_file_inputs(self) -> list[FormField]:
        return self.file_inputs

    async def set_file(self, key: str, path: Path) -> None:
        self.files[key] = path


def test_filler_skips_prefilled_and_flags_fallback_answers(applicant) -> None:
    driver = RecordingDriver(
        [
            FormField(key="f0", tag="input", label="First name", value="Augusta"),
            FormField(key="f1", tag="input", label="Last name"),
            FormField(key="f2", tag="input", input_type="email", label="Email"),
            FormField(
                key="f3",
                tag="select",
                input_type="select",
                label="Are you legally authorized to work here?",
                options=_options(("", "Select..."), ("y", "Yes"), ("n", "No")),
            ),
            FormField(
                key="f4",
                tag="select",
                input_type="select",
                label="Preferred pronouns",
                required=True,
                options=_options(("", "Select..."), ("she", "She/her"), ("they", "They/them")),
            ),
            FormField(key="f5", tag="textarea", label="Anything else?"),
        ]
    )

    report = asyncio.run(FormFiller().fill(driver, applicant))

    assert driver.values == {"f1": "Lovelace", "f2": "ada@example.com", "f3": "y", "f4": "she"}
    assert [item.label for item in report.fallbacks] == ["preferred pronouns"]
    assert "anything else" in report.labels


def test_upload_documents_only_uploads_existing_files(tmp_path: Path) -> None:
    resume = tmp_path / "resume.pdf"
    resume.write_bytes(b"%PDF-1.4")
    driver = RecordingDriver([], [_file_input("u0", label="Resume"), _file_input("u1", label="Cover letter")])

    uploaded = asyncio.run(upload_documents(driver, resume, tmp_path / "missing.pdf"))

    assert uploaded == ["resume"]
    assert driver.files == {"u0": resume}

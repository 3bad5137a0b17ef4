from __future__ import annotations

from applyflow.types import SourceErrorCategory


class ApplyflowError(Exception):
    pass


class JobNotFoundError(ApplyflowError, LookupError):
    def __init__(self, reference: str):
        super().__init__(f"job {reference} not found")
        self.reference = reference


class ConfigurationError(ApplyflowError):
    """Missing or invalid local configuration such as the applicant profile.

    Raised before any state is written so a run can be retried after fixing it.
    """


class SourceError(ApplyflowError):
    def __init__(self, message: str, *, category: SourceErrorCategory, url: str = ""):
        super().__init__(message)
        self.category = category
        self.url = url

    def __str__(self) -> str:
        base = super().__str__()
        return f"{self.category}: {base}"

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator

from applyflow.core.errors import SourceError
from applyflow.types import ApplyOptions, ApplyResult, DiscoveryCriteria, EnrichedJob, JobStub, JobSummary


class JobSourceAdapter(ABC):
    """Knows how to list postings on a platform and how to read one posting."""

    kind = "job-source"
    platform: str = ""
    name: str = ""

    @abstractmethod
    def can_handle_url(self, url: str) -> bool:
        raise NotImplementedError

    def supports_discovery(self) -> bool:
        return False

    def supports_enrichment(self) -> bool:
        return False

    def discover(self, criteria: DiscoveryCriteria) -> Iterator[JobStub]:
        raise SourceError(f"{self.name} does not support discovery", category="unsupported")

    def enrich(self, job_url: str) -> EnrichedJob:
        raise SourceError(f"{self.name} does not support enrichment", category="unsupported", url=job_url)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} platform={self.platform!r}>"


class ApplyAdapter(ABC):
    """Drives one application attempt for the URLs it claims.

    Implementations never raise for site behaviour: every attempt ends in an
    ``ApplyResult``.
    """

    kind = "apply"
    platform: str = ""
    name: str = ""

    @abstractmethod
    def can_handle_url(self, url: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def apply_assisted(self, job: JobSummary, options: ApplyOptions) -> ApplyResult:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} platform={self.platform!r}>"


def matches_criteria(stub: JobStub, criteria: DiscoveryCriteria) -> bool:
    if criteria.query and criteria.query.lower() not in stub.title.lower():
        return False
    if criteria.location and criteria.location.lower() not in stub.location.lower():
        return False
    return True

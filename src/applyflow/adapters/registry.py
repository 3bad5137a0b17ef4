from __future__ import annotations

import logging

from applyflow.adapters.base import ApplyAdapter, JobSourceAdapter
from applyflow.adapters.generic import FormApplyAdapter, GenericPageSource
from applyflow.adapters.greenhouse import GreenhouseApplyAdapter, GreenhouseSource
from applyflow.adapters.lever import LeverApplyAdapter, LeverSource
from applyflow.adapters.linkedin import LinkedInApplyAdapter
from applyflow.adapters.workday import WorkdayApplyAdapter, WorkdaySource
from applyflow.config import Settings

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Ordered collections of adapters; the first adapter that claims a URL owns it."""

    def __init__(self) -> None:
        self.job_sources: list[JobSourceAdapter] = []
        self.apply_adapters: list[ApplyAdapter] = []

    def register(self, adapter: JobSourceAdapter | ApplyAdapter) -> None:
        if isinstance(adapter, JobSourceAdapter):
            self.job_sources.append(adapter)
        elif isinstance(adapter, ApplyAdapter):
            self.apply_adapters.append(adapter)
        else:
            raise TypeError(f"not an adapter: {adapter!r}")
        logger.debug("Registered %s adapter %s", adapter.kind, adapter.name)

    def get_job_source_for_url(self, url: str) -> JobSourceAdapter | None:
        for adapter in self.job_sources:
            if adapter.can_handle_url(url):
                return adapter
        return None

    def get_apply_adapter_for_url(self, url: str) -> ApplyAdapter | None:
        for adapter in self.apply_adapters:
            if adapter.can_handle_url(url):
                return adapter
        return None

    def get_job_source(self, platform: str) -> JobSourceAdapter | None:
        for adapter in self.job_sources:
            if adapter.platform == platform:
                return adapter
        return None

    def list_adapters(self) -> dict[str, list[str]]:
        return {
            "job_sources": [adapter.name for adapter in self.job_sources],
            "apply_adapters": [adapter.name for adapter in self.apply_adapters],
        }


def create_default_registry(settings: Settings) -> AdapterRegistry:
    registry = AdapterRegistry()
    for adapter in [
        GreenhouseSource(settings),
        LeverSource(settings),
        WorkdaySource(settings),
        GenericPageSource(settings),
        GreenhouseApplyAdapter(settings),
        LeverApplyAdapter(settings),
        WorkdayApplyAdapter(settings),
        LinkedInApplyAdapter(settings),
        FormApplyAdapter(settings),
    ]:
        registry.register(adapter)
    return registry

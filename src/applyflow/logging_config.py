from __future__ import annotations

import logging

from applyflow.config import Settings


_LOG_CONFIGURED = False


def configure_logging(settings: Settings) -> None:
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # urllib3 (requests) and httpx (openai) log every request at INFO
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _LOG_CONFIGURED = True

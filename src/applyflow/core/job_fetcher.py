from __future__ import annotations

import logging
from typing import Any

import requests
from bs4 import BeautifulSoup

from applyflow.config import Settings
from applyflow.core.errors import SourceError

logger = logging.getLogger(__name__)


def _get(url: str, settings: Settings, *, accept: str) -> requests.Response:
    try:
        response = requests.get(
            url,
            timeout=settings.http_timeout_sec,
            headers={"User-Agent": settings.http_user_agent, "Accept": accept},
        )
    except requests.RequestException as exc:
        logger.warning("Failed to fetch %s: %s", url, exc)
        raise SourceError(str(exc), category="network", url=url) from exc

    if response.status_code >= 400:
        logger.warning("Fetch %s returned HTTP %s", url, response.status_code)
        raise SourceError(f"HTTP {response.status_code} for {url}", category="http", url=url)
    return response


def fetch_html(url: str, settings: Settings) -> str:
    return _get(url, settings, accept="text/html,application/xhtml+xml").text


def fetch_json(url: str, settings: Settings) -> Any:
    response = _get(url, settings, accept="application/json")
    try:
        return response.json()
    except ValueError as exc:
        raise SourceError(f"invalid JSON from {url}", category="parse", url=url) from exc


def page_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.extract()

    text = soup.get_text("\n")
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return "\n".join(lines)

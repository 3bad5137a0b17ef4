from __future__ import annotations

import json
import logging
from typing import Any

from bs4 import BeautifulSoup

from applyflow.types import EnrichedJob

logger = logging.getLogger(__name__)


def parse(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def text_of(soup: BeautifulSoup, selector: str) -> str:
    node = soup.select_one(selector)
    if node is None:
        return ""
    return " ".join(node.get_text(" ").split())


def block_text(soup: BeautifulSoup, selector: str) -> str:
    node = soup.select_one(selector)
    if node is None:
        return ""
    lines = [line.strip() for line in node.get_text("\n").splitlines() if line.strip()]
    return "\n".join(lines)


def meta_content(soup: BeautifulSoup, key: str) -> str:
    node = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
    if node is None:
        return ""
    return str(node.get("content", "")).strip()


def html_to_text(fragment: str) -> str:
    if not fragment:
        return ""
    lines = [line.strip() for line in parse(fragment).get_text("\n").splitlines() if line.strip()]
    return "\n".join(lines)


def find_job_posting(soup: BeautifulSoup) -> dict[str, Any] | None:
    """Return the first schema.org JobPosting object embedded as JSON-LD."""
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("Skipping malformed JSON-LD block")
            continue

        candidates = payload if isinstance(payload, list) else [payload]
        for item in candidates:
            if not isinstance(item, dict):
                continue
            graph = item.get("@graph")
            nodes = graph if isinstance(graph, list) else [item]
            for node in nodes:
                if isinstance(node, dict) and node.get("@type") == "JobPosting":
                    return node
    return None


def _posting_location(posting: dict[str, Any]) -> str:
    locations = posting.get("jobLocation")
    if isinstance(locations, dict):
        locations = [locations]
    if not isinstance(locations, list):
        return ""

    parts: list[str] = []
    for location in locations:
        address = location.get("address", {}) if isinstance(location, dict) else {}
        for entry in address if isinstance(address, list) else [address]:
            if isinstance(entry, str):
                if entry.strip():
                    parts.append(entry.strip())
                continue
            if not isinstance(entry, dict):
                continue
            pieces = [entry.get("addressLocality", ""), entry.get("addressRegion", ""), entry.get("addressCountry", "")]
            label = ", ".join(str(piece) for piece in pieces if piece and isinstance(piece, str))
            if label:
                parts.append(label)
    if not parts and posting.get("jobLocationType") == "TELECOMMUTE":
        return "Remote"
    return "; ".join(parts)


def job_from_posting(posting: dict[str, Any]) -> EnrichedJob:
    organization = posting.get("hiringOrganization")
    company = organization.get("name", "") if isinstance(organization, dict) else str(organization or "")
    metadata: dict[str, Any] = {}
    for key, label in [
        ("employmentType", "employment_type"),
        ("datePosted", "date_posted"),
        ("validThrough", "valid_through"),
    ]:
        if posting.get(key):
            metadata[label] = posting[key]

    return EnrichedJob(
        title=str(posting.get("title", "")).strip(),
        company=str(company).strip(),
        location=_posting_location(posting),
        description=html_to_text(str(posting.get("description", ""))),
        metadata=metadata,
    )

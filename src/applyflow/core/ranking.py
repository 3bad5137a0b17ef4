from __future__ import annotations

from dataclasses import dataclass

from applyflow.db.models import JobRecord


@dataclass(frozen=True, slots=True)
class RankedJob:
    job_id: str
    score: int
    matched: tuple[str, ...]


def score_job(title: str, location: str, weights: dict[str, int]) -> tuple[int, tuple[str, ...]]:
    haystack = f"{title} {location}".lower()
    matched = tuple(term for term in weights if term in haystack)
    return sum(weights[term] for term in matched), matched


def rank_jobs(jobs: list[JobRecord], weights: dict[str, int]) -> list[RankedJob]:
    """Order jobs by keyword score, highest first; ties keep tracker order."""
    ranked = []
    for job in jobs:
        score, matched = score_job(job.title, job.location, weights)
        ranked.append(RankedJob(job_id=job.job_id, score=score, matched=matched))
    return sorted(ranked, key=lambda item: item.score, reverse=True)

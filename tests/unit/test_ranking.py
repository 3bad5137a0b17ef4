from __future__ import annotations

from applyflow.config import Settings
from applyflow.core.ranking import rank_jobs, score_job
from applyflow.db.models import JobRecord


def _record(job_id: str, title: str, location: str = "") -> JobRecord:
    return JobRecord(job_id=job_id, job_url=f"https://example.com/{job_id}", platform="generic", title=title, location=location)


def test_score_job_sums_matching_terms() -> None:
    score, matched = score_job("Senior Python Engineer", "Remote (EU)", {"remote": 50, "senior": 20, "python": 15, "java": 10})
    assert score == 85
    assert matched == ("remote", "senior", "python")


def test_rank_jobs_orders_by_score_and_keeps_ties_stable() -> None:
    weights = {"python": 10, "remote": 5}
    ranked = rank_jobs(
        [
            _record("a", "Sales Manager"),
            _record("b", "Python Developer", "Remote"),
            _record("c", "Office Manager"),
            _record("d", "Python Analyst"),
        ],
        weights,
    )
    assert [item.job_id for item in ranked] == ["b", "d", "a", "c"]
    assert ranked[0].score == 15


def test_ranking_weights_are_read_from_settings() -> None:
    settings = Settings(_env_file=None, ranking_keywords="Remote:40, staff:25, broken, :3, lead:x")
    assert settings.ranking_weights == {"remote": 40, "staff": 25, "broken": 0}

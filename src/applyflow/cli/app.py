from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import typer

from applyflow.adapters.registry import create_default_registry
from applyflow.config import Settings, get_settings
from applyflow.core.errors import ConfigurationError, JobNotFoundError, SourceError
from applyflow.core.pipeline import Pipeline
from applyflow.core.ranking import rank_jobs
from applyflow.db.init import ensure_data_directories, init_database
from applyflow.db.session import create_db_engine, create_session_factory
from applyflow.db.tracker import Tracker, record_to_dict
from applyflow.documents.builder import DocumentBuilder
from applyflow.logging_config import configure_logging
from applyflow.types import DiscoveryCriteria, JobStatus

app = typer.Typer(help="applyflow CLI")
jobs_app = typer.Typer(help="Inspect tracked jobs")

app.add_typer(jobs_app, name="jobs")


def _echo(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _bootstrap() -> tuple[Settings, Any]:
    settings = get_settings()
    configure_logging(settings)
    ensure_data_directories(settings)
    engine = create_db_engine(settings)
    init_database(engine)
    return settings, create_session_factory(engine)


def _pipeline(settings: Settings, tracker: Tracker) -> Pipeline:
    return Pipeline(
        settings=settings,
        tracker=tracker,
        registry=create_default_registry(settings),
        documents=DocumentBuilder(settings),
    )


def _fail(message: str) -> None:
    typer.echo(json.dumps({"ok": False, "error": message}, indent=2), err=True)
    raise typer.Exit(code=1)


@app.command("init")
def init_cmd() -> None:
    """Create data directories and bring the database schema up to date."""
    settings = get_settings()
    configure_logging(settings)
    ensure_data_directories(settings)
    result = init_database(create_db_engine(settings))
    _echo({"ok": True, "database_url": settings.database_url, **result})


@app.command("discover")
def discover_cmd(input: Path = typer.Option(..., "--input", exists=True, readable=True, dir_okay=False)) -> None:
    """Track every job URL listed in a text file (one per line)."""
    settings, factory = _bootstrap()
    with factory() as db:
        results = _pipeline(settings, Tracker(db)).discover_from_file(input)
        _echo(
            {
                "inserted": sum(1 for item in results if item.inserted),
                "existing": sum(1 for item in results if item.job_id and not item.inserted),
                "errors": sum(1 for item in results if item.error),
                "lines": [item.model_dump() for item in results],
            }
        )


@app.command("discover-board")
def discover_board_cmd(
    platform: str = typer.Option(..., "--platform", help="greenhouse or lever"),
    board: str = typer.Option(..., "--board", help="board token or company slug"),
    query: str = typer.Option("", "--query"),
    location: str = typer.Option("", "--location"),
    limit: int | None = typer.Option(None, "--limit"),
) -> None:
    """List postings from a public job board and track them."""
    settings, factory = _bootstrap()
    criteria = DiscoveryCriteria(board=board, query=query, location=location, limit=limit or settings.discovery_limit)
    with factory() as db:
        try:
            results = _pipeline(settings, Tracker(db)).discover_from_source(platform, criteria)
        except (ValueError, SourceError) as exc:
            _fail(str(exc))
        _echo(
            {
                "inserted": sum(1 for item in results if item.inserted),
                "jobs": [item.model_dump() for item in results],
            }
        )


@app.command("enrich")
def enrich_cmd(job: str = typer.Option(..., "--job", help="job id or URL")) -> None:
    settings, factory = _bootstrap()
    with factory() as db:
        try:
            outcome = _pipeline(settings, Tracker(db)).enrich_job(job)
        except JobNotFoundError as exc:
            _fail(str(exc))
        _echo(outcome.model_dump())


@app.command("prepare")
def prepare_cmd(job: str = typer.Option(..., "--job", help="job id or URL")) -> None:
    """Enrich a job and build its tailored resume and cover letter."""
    settings, factory = _bootstrap()
    with factory() as db:
        try:
            outcome = _pipeline(settings, Tracker(db)).prepare_job(job)
        except (JobNotFoundError, ConfigurationError) as exc:
            _fail(str(exc))
        _echo(outcome.model_dump())


@app.command("apply")
def apply_cmd(
    job: str | None = typer.Option(None, "--job", help="job id or URL"),
    batch: bool = typer.Option(False, "--batch", help="apply to prepared jobs"),
    limit: int | None = typer.Option(None, "--limit"),
    mode: str | None = typer.Option(None, "--mode", help="assisted (default) or auto"),
    dry_run: bool | None = typer.Option(None, "--dry-run/--no-dry-run"),
) -> None:
    """Fill application forms; submits only with --mode auto and without --dry-run."""
    if bool(job) == batch:
        raise typer.BadParameter("pass exactly one of --job or --batch")
    if mode is not None and mode not in {"assisted", "auto"}:
        raise typer.BadParameter("--mode must be assisted or auto")

    settings, factory = _bootstrap()
    with factory() as db:
        pipeline = _pipeline(settings, Tracker(db))
        try:
            if batch:
                outcomes = asyncio.run(pipeline.apply_batch(limit=limit, mode=mode, dry_run=dry_run))
                _echo([outcome.model_dump() for outcome in outcomes])
            else:
                outcome = asyncio.run(pipeline.apply_job(job, mode=mode, dry_run=dry_run))
                _echo(outcome.model_dump())
        except (JobNotFoundError, ConfigurationError) as exc:
            _fail(str(exc))


@app.command("report")
def report_cmd() -> None:
    """Write JSON and CSV snapshots of every tracked job."""
    settings, factory = _bootstrap()
    with factory() as db:
        tracker = Tracker(db)
        paths = _pipeline(settings, tracker).write_reports()
        _echo({**paths.model_dump(), "by_status": tracker.status_counts()})


@app.command("adapters")
def adapters_cmd() -> None:
    settings = get_settings()
    configure_logging(settings)
    _echo(create_default_registry(settings).list_adapters())


@jobs_app.command("list")
def jobs_list(
    status: str | None = typer.Option(None, "--status"),
    limit: int = typer.Option(50, "--limit"),
) -> None:
    _, factory = _bootstrap()
    with factory() as db:
        tracker = Tracker(db)
        if status:
            try:
                records = tracker.get_jobs_by_status(JobStatus(status), limit=limit)
            except ValueError:
                raise typer.BadParameter(f"unknown status {status!r}")
        else:
            records = tracker.list_jobs(limit=limit)
        _echo(
            [
                {
                    "job_id": record.job_id,
                    "status": record.status,
                    "platform": record.platform,
                    "company": record.company,
                    "title": record.title,
                    "job_url": record.job_url,
                }
                for record in records
            ]
        )


@jobs_app.command("show")
def jobs_show(job: str = typer.Option(..., "--job", help="job id or URL")) -> None:
    _, factory = _bootstrap()
    with factory() as db:
        try:
            record = Tracker(db).resolve(job)
        except JobNotFoundError as exc:
            _fail(str(exc))
        _echo(record_to_dict(record))


@jobs_app.command("rank")
def jobs_rank(
    status: str = typer.Option(JobStatus.DISCOVERED.value, "--status"),
    limit: int = typer.Option(20, "--limit"),
) -> None:
    """Order tracked jobs by the configured keyword weights."""
    try:
        wanted = JobStatus(status)
    except ValueError:
        raise typer.BadParameter(f"unknown status {status!r}")
    settings, factory = _bootstrap()
    with factory() as db:
        records = Tracker(db).get_jobs_by_status(wanted)
        ranked = rank_jobs(records, settings.ranking_weights)[:limit]
        by_id = {record.job_id: record for record in records}
        _echo(
            [
                {
                    "job_id": item.job_id,
                    "score": item.score,
                    "matched": list(item.matched),
                    "title": by_id[item.job_id].title,
                    "company": by_id[item.job_id].company,
                }
                for item in ranked
            ]
        )

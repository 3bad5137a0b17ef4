from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import Engine
from sqlalchemy.engine import make_url

from applyflow.config import Settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


def ensure_data_directories(settings: Settings) -> None:
    paths: list[Path] = [
        settings.data_dir,
        settings.runs_dir,
        settings.applications_dir,
        settings.reports_dir,
    ]
    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        paths.append(Path(url.database).parent)

    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def alembic_config(database_url: str) -> Config:
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_DIR))
    config.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return config


def init_database(engine: Engine) -> dict[str, str]:
    """Bring the schema up to date; only ever adds tables, columns and indexes."""
    config = alembic_config(engine.url.render_as_string(hide_password=False))
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")
        revision = MigrationContext.configure(connection).get_current_revision() or ""

    logger.info("Database schema at revision %s", revision)
    return {"revision": revision}

"""
Hafez Quraan Backend — Schema Manager
=======================================

What:  Brings the database schema up to the latest Alembic revision.
How:   Builds an Alembic Config in code (script location = backend/alembic)
       and runs `upgrade head`. Revisions are ordered files under
       alembic/versions/; each one runs at most once per database, so
       calling this on every startup is safe.
When:  From the lifespan handler (in a worker thread, because alembic/env.py
       drives its own event loop) when RUN_MIGRATIONS_ON_STARTUP is true,
       or by hand: `python -m hafez_api.migrations`.

Request handlers never touch the schema.
"""

import logging
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config

logger = logging.getLogger(__name__)

ALEMBIC_DIR = Path(__file__).resolve().parent.parent / "alembic"


def build_alembic_config(database_url: str) -> Config:
    config = Config()
    config.set_main_option("script_location", str(ALEMBIC_DIR))
    # ConfigParser interpolation: a literal '%' in passwords must be doubled
    config.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return config


def run_migrations(database_url: str, revision: str = "head") -> None:
    """
    Upgrade the database at `database_url` to `revision`.

    Must be called without a running event loop in the current thread.
    """
    logger.info("Applying database migrations (target=%s)", revision)
    command.upgrade(build_alembic_config(database_url), revision)
    logger.info("Database schema is up to date")


def main(database_url: Optional[str] = None) -> None:
    from hafez_api.config import settings

    url = database_url or settings.database_url
    if not url:
        raise SystemExit("DATABASE_URL is not set")
    logging.basicConfig(level=settings.log_level)
    run_migrations(url)


if __name__ == "__main__":
    main()

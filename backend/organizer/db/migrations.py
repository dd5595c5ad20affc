"""Programmatic alembic upgrades, run at startup."""

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config

from backend.organizer.config import Settings

logger = logging.getLogger(__name__)

SCRIPT_LOCATION = Path(__file__).resolve().parent / "alembic"


def build_alembic_config(settings: Settings) -> Config:
    """Build an alembic Config without an ini file."""
    cfg = Config()
    cfg.set_main_option("script_location", str(SCRIPT_LOCATION))
    # configparser interpolation: escape % in passwords
    cfg.set_main_option("sqlalchemy.url", settings.migration_database_url.replace("%", "%%"))
    return cfg


def run_migrations(settings: Settings) -> None:
    """Upgrade the schema to head (blocking; call from a worker thread)."""
    logger.info("[db] running migrations")
    command.upgrade(build_alembic_config(settings), "head")
    logger.info("[db] migrations complete")

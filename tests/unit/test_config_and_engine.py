"""Tests for settings URL handling and the startup connection retry."""

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from backend.organizer.config import Settings
from backend.organizer.db.engine import connect_with_retry
from backend.organizer.db.migrations import build_alembic_config
from backend.organizer.docs.errors import DatabaseUnavailableError


def test_postgres_url_uses_asyncpg_driver() -> None:
    settings = Settings(database_url=None, postgres_url="postgresql://u:p@db:5432/books")

    assert settings.resolved_database_url == "postgresql+asyncpg://u:p@db:5432/books"
    assert settings.migration_database_url == "postgresql://u:p@db:5432/books"


def test_database_url_overrides_postgres_url() -> None:
    settings = Settings(database_url="sqlite+aiosqlite:///./books.db")

    assert settings.resolved_database_url == "sqlite+aiosqlite:///./books.db"
    assert settings.migration_database_url == "sqlite:///./books.db"


def test_asyncpg_url_is_made_sync_for_migrations() -> None:
    settings = Settings(database_url="postgresql+asyncpg://u:p@db/books")

    assert settings.migration_database_url == "postgresql://u:p@db/books"


def test_defaults() -> None:
    settings = Settings(database_url=None)

    assert settings.bucket_name == "my-books"
    assert settings.signed_url_ttl_hours == 15
    assert settings.db_connect_attempts == 3
    assert settings.scan_queue_size == 1
    assert settings.cover_endpoint == ""


def test_alembic_config_escapes_percent_signs() -> None:
    settings = Settings(database_url="postgresql://u:p%40ss@db/books")

    cfg = build_alembic_config(settings)

    assert cfg.get_main_option("sqlalchemy.url") == "postgresql://u:p%40ss@db/books"
    assert cfg.get_main_option("script_location", "").endswith("alembic")


@pytest.mark.asyncio
async def test_connect_with_retry_succeeds() -> None:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")

    await connect_with_retry(engine, attempts=1, backoff_seconds=0)

    await engine.dispose()


@pytest.mark.asyncio
async def test_connect_with_retry_gives_up_after_attempts(tmp_path: object) -> None:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/missing-dir/books.db")

    with pytest.raises(DatabaseUnavailableError) as exc_info:
        await connect_with_retry(engine, attempts=3, backoff_seconds=0)

    assert "after 3 attempts" in str(exc_info.value)
    assert exc_info.value.operation == "connect"

    await engine.dispose()

"""Shared pytest fixtures for all test suites."""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from backend.organizer.adapters.blob_store import InMemoryBlobStore
from backend.organizer.db.inmemory import InMemoryDocumentRepository
from backend.organizer.db.models import Base
from backend.organizer.docs.service import DocumentService

# Smallest payloads the classifier will read a full header from
PDF_BYTES = b"%PDF-1.7\n" + b"0" * 300
EPUB_BYTES = (
    b"PK\x03\x04" + b"\x00" * 26 + b"mimetypeapplication/epub+zip" + b"\x00" * 260
)
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 300


class RecordingNotifier:
    """Cover notifier double that records calls instead of sending them."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def notify(self, document_id: str, path: str) -> None:
        self.calls.append((document_id, path))


@pytest.fixture
def pdf_bytes() -> bytes:
    return PDF_BYTES


@pytest.fixture
def epub_bytes() -> bytes:
    return EPUB_BYTES


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def repository() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def service(
    repository: InMemoryDocumentRepository,
    blob_store: InMemoryBlobStore,
    notifier: RecordingNotifier,
) -> DocumentService:
    return DocumentService(repository, blob_store, notifier)


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine.

    With NullPool every connection opens a fresh empty database, so
    `sqlite_session` keeps one connection for the whole test.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=NullPool,
        echo=False,
    )
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def sqlite_session(sqlite_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Session bound to one SQLite connection holding the schema."""
    async with sqlite_engine.connect() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.commit()
        async with AsyncSession(bind=conn, expire_on_commit=False) as session:
            yield session


@pytest_asyncio.fixture
async def postgres_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine for PostgreSQL integration tests.

    Requires DATABASE_URL to be set to a real PostgreSQL connection string.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set - skipping postgres test")

    # Ensure it's a postgres URL
    if not database_url.startswith(("postgresql://", "postgresql+asyncpg://")):
        pytest.skip(f"DATABASE_URL is not PostgreSQL: {database_url}")

    # Convert to async driver if needed
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(
        database_url,
        poolclass=NullPool,
        echo=False,
    )

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Cleanup: drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def postgres_session(postgres_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create async session for PostgreSQL integration tests."""
    async with AsyncSession(postgres_engine, expire_on_commit=False) as session:
        yield session

"""FastAPI dependencies wiring the services to their collaborators."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.organizer.adapters.blob_store import BlobStore, S3BlobStore
from backend.organizer.adapters.covers import CoverNotifier
from backend.organizer.config import get_settings
from backend.organizer.db.engine import get_session
from backend.organizer.db.sql_repositories import SqlDocumentRepository
from backend.organizer.docs.books import BookService
from backend.organizer.docs.service import DocumentService


@lru_cache
def get_blob_store() -> BlobStore:
    """Process-wide blob store built from settings."""
    return S3BlobStore.from_settings(get_settings())


@lru_cache
def get_cover_notifier() -> CoverNotifier:
    """Process-wide cover notifier; closed by the app lifespan."""
    return CoverNotifier.from_settings(get_settings())


async def get_document_service(
    session: Annotated[AsyncSession, Depends(get_session)],
    blob_store: Annotated[BlobStore, Depends(get_blob_store)],
    notifier: Annotated[CoverNotifier, Depends(get_cover_notifier)],
) -> DocumentService:
    return DocumentService(
        SqlDocumentRepository(session),
        blob_store,
        notifier,
        scan_queue_size=get_settings().scan_queue_size,
    )


async def get_book_service(
    documents: Annotated[DocumentService, Depends(get_document_service)],
) -> BookService:
    return BookService(documents)

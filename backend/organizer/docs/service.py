"""Document service: ingestion, lookup, edits, deletion and reconciliation.

The service owns the ordering of side effects. An upload is classified
before anything is written, the blob is stored before its metadata row,
and the cover generator is told about a document only after both exist.
"""

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any, BinaryIO, Protocol
from uuid import uuid4

from backend.organizer.adapters.blob_store import BlobStore
from backend.organizer.db.repositories import DocumentRepository
from backend.organizer.docs.classifier import is_supported
from backend.organizer.docs.errors import (
    DocumentConflictError,
    DocumentError,
    DocumentNotFoundError,
    InvalidFileTypeError,
    RepositoryError,
    StorageError,
    UnsupportedDocumentTypeError,
)
from backend.organizer.docs.scan import run_scan
from backend.organizer.models.docs import Document, DocumentDraft, DocumentType, DocumentUpdate
from backend.organizer.utils.logging import log_event
from backend.organizer.utils.metrics import (
    documents_added_total,
    documents_rejected_total,
    scan_documents_inserted_total,
    scan_runs_total,
)

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, document_id: str, path: str) -> None: ...


class DocumentService:
    """Coordinates the metadata repository, the blob store and the cover notifier."""

    def __init__(
        self,
        repository: DocumentRepository,
        blob_store: BlobStore,
        notifier: Notifier | None = None,
        *,
        scan_queue_size: int = 1,
    ) -> None:
        self._repository = repository
        self._blob_store = blob_store
        self._notifier = notifier
        self._scan_queue_size = scan_queue_size

    async def find_all(self, filters: dict[str, Any] | None = None) -> list[Document]:
        """List documents matching every filter, ordered by display name."""
        try:
            return await self._repository.find_all(filters or {})
        except DocumentError as e:
            logger.error(f"[find_all] unable to fetch documents: {e}")
            raise

    async def find_by_id(
        self,
        document_id: str,
        document_type: DocumentType | None = None,
    ) -> Document:
        """Fetch one document with its path replaced by a time-limited URL.

        Args:
            document_id: Document identifier
            document_type: When given, documents of another type are treated
                as missing

        Raises:
            DocumentNotFoundError: If no matching document exists
            StorageError: If the access URL cannot be produced
        """
        document = await self._get(document_id, "find_by_id", document_type)
        url = await self._blob_store.access_url(document.path)
        return document.model_copy(update={"path": url})

    async def open_content(self, document_id: str) -> tuple[Document, BinaryIO]:
        """Return the document and a reader over its stored content."""
        document = await self._get(document_id, "open_content")
        return document, await self._blob_store.open_reader(document.path)

    async def add(self, stream: BinaryIO, draft: DocumentDraft) -> Document:
        """Ingest an upload.

        Nothing is written unless the content is an accepted format. If the
        metadata insert fails after the blob was stored, the blob is removed
        again, unless a concurrent upload already claimed the same name.

        Raises:
            InvalidFileTypeError: If the content is not EPUB or PDF
            DocumentConflictError: If a document is already stored under `draft.name`
            StorageError: If the blob cannot be stored
            RepositoryError: If the metadata row cannot be written
        """
        if not await asyncio.to_thread(is_supported, stream):
            documents_rejected_total.labels(reason="invalid_file_type").inc()
            logger.warning(f"[add] rejected upload {draft.name}: invalid file type")
            raise InvalidFileTypeError("invalid file type", operation="add", name=draft.name)

        if await self._repository.exists_by_path(draft.name):
            documents_rejected_total.labels(reason="conflict").inc()
            raise DocumentConflictError(
                "a document is already stored under this name", operation="add", path=draft.name
            )

        path = await self._blob_store.save(draft.name, stream)

        now = datetime.now(UTC)
        document = Document(
            id=str(uuid4()),
            display_name=draft.display_name,
            name=draft.name,
            path=path,
            type=draft.type,
            description=draft.description,
            created=now,
            updated=now,
        )

        try:
            await self._repository.insert(document)
        except DocumentConflictError:
            documents_rejected_total.labels(reason="conflict").inc()
            logger.warning(f"[add] lost the race for {path}; keeping the blob")
            raise
        except RepositoryError:
            await self._discard_orphan(path)
            raise

        documents_added_total.labels(type=document.type.value).inc()
        log_event(logger, "[add] document stored", id=document.id, path=path, type=document.type.value)

        if self._notifier is not None:
            self._notifier.notify(document.id, document.path)

        return document

    async def update_fields(self, document_id: str, changes: DocumentUpdate) -> Document:
        """Apply the non-empty fields of `changes` and refresh `updated`.

        Raises:
            DocumentNotFoundError: If the document does not exist
            UnsupportedDocumentTypeError: If `changes.type` is not a known type
        """
        document = await self._get(document_id, "update_fields")

        updates: dict[str, Any] = {}
        if changes.description:
            updates["description"] = changes.description
        if changes.display_name:
            updates["display_name"] = changes.display_name
        if changes.type:
            try:
                updates["type"] = DocumentType(changes.type)
            except ValueError as e:
                raise UnsupportedDocumentTypeError(
                    "type not supported", operation="update_fields", id=document_id, type=changes.type
                ) from e
        updates["updated"] = datetime.now(UTC)

        updated = await self._repository.update(document.model_copy(update=updates))
        log_event(logger, "[update_fields] document updated", id=document_id, fields=sorted(updates))
        return updated

    async def delete(self, document_id: str) -> None:
        """Remove the metadata row; stored content is left in place."""
        await self._repository.delete(document_id)
        log_event(logger, "[delete] document removed", id=document_id)

    async def scan(self, document_type: DocumentType = DocumentType.book) -> int:
        """Register stored `.pdf` blobs that have no metadata row yet.

        Returns:
            Number of documents inserted by this run
        """
        logger.info("[scan] starting storage reconciliation")
        try:
            inserted = await run_scan(
                self._blob_store,
                self._repository,
                document_type=document_type,
                queue_size=self._scan_queue_size,
            )
        except DocumentError as e:
            scan_runs_total.labels(outcome="error").inc()
            logger.error(f"[scan] reconciliation failed: {e}")
            raise

        scan_runs_total.labels(outcome="success").inc()
        scan_documents_inserted_total.inc(inserted)
        log_event(logger, "[scan] reconciliation complete", inserted=inserted)
        return inserted

    async def _get(
        self,
        document_id: str,
        operation: str,
        document_type: DocumentType | None = None,
    ) -> Document:
        document = await self._repository.find_by_id(document_id)
        if document is None or (document_type is not None and document.type != document_type):
            raise DocumentNotFoundError("entity does not exist", operation=operation, id=document_id)
        return document

    async def _discard_orphan(self, path: str) -> None:
        try:
            await self._blob_store.delete(path)
        except StorageError as e:
            logger.error(f"[add] unable to remove orphaned blob {path}: {e}")
        else:
            logger.warning(f"[add] removed blob {path} after failed metadata insert")

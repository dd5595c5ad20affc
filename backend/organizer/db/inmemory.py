"""In-memory implementations of repository interfaces."""

from collections.abc import AsyncIterator, Mapping
from typing import Any

from backend.organizer.db.repositories import FILTERABLE_FIELDS
from backend.organizer.docs.errors import (
    DocumentConflictError,
    DocumentNotFoundError,
    InvalidFilterError,
    RepositoryError,
)
from backend.organizer.models.docs import Document


class InMemoryDocumentRepository:
    """In-memory implementation of DocumentRepository.

    Runs on a single event loop, so the path check and the insert in
    upsert_stream happen without a suspension point in between.
    """

    def __init__(self) -> None:
        self._documents: dict[str, Document] = {}
        self.insert_calls = 0

    async def find_all(self, filters: Mapping[str, Any] | None = None) -> list[Document]:
        """List documents matching equality filters, ordered by display name."""
        filters = dict(filters or {})
        for field in filters:
            if field not in FILTERABLE_FIELDS:
                raise InvalidFilterError("unsupported filter field", operation="find_all", field=field)

        matches = [
            doc.model_copy(deep=True)
            for doc in self._documents.values()
            if all(getattr(doc, field) == value for field, value in filters.items())
        ]
        return sorted(matches, key=lambda doc: doc.display_name)

    async def find_by_id(self, document_id: str) -> Document | None:
        """Get document by ID."""
        document = self._documents.get(document_id)
        if document is None:
            return None
        return document.model_copy(deep=True)

    async def exists_by_path(self, path: str) -> bool:
        """Check whether a document already records `path`."""
        return any(doc.path == path for doc in self._documents.values())

    async def insert(self, document: Document) -> None:
        """Insert a new document."""
        self.insert_calls += 1
        if await self.exists_by_path(document.path):
            raise DocumentConflictError(
                "a document is already stored under this name",
                operation="insert",
                id=document.id,
                path=document.path,
            )
        if document.id in self._documents:
            raise RepositoryError(
                "unable to insert doc metadata",
                operation="insert",
                id=document.id,
                path=document.path,
            )
        self._documents[document.id] = document.model_copy(deep=True)

    async def update(self, document: Document) -> Document:
        """Persist mutable fields of an existing document."""
        stored = self._documents.get(document.id)
        if stored is None:
            raise DocumentNotFoundError("document does not exist", operation="update", id=document.id)

        self._documents[document.id] = stored.model_copy(
            update={
                "description": document.description,
                "display_name": document.display_name,
                "type": document.type,
                "updated": document.updated,
            }
        )
        return document

    async def delete(self, document_id: str) -> None:
        """Delete a document."""
        if self._documents.pop(document_id, None) is None:
            raise DocumentNotFoundError("document does not exist", operation="delete", id=document_id)

    async def upsert_stream(self, documents: AsyncIterator[Document]) -> int:
        """Insert streamed documents whose path is not yet recorded."""
        count = 0
        async for document in documents:
            if await self.exists_by_path(document.path):
                continue
            await self.insert(document)
            count += 1
        return count

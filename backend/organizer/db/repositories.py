"""Repository protocol interfaces for data access."""

from collections.abc import AsyncIterator, Mapping
from typing import Any, Protocol

from backend.organizer.models.docs import Document

# Fields find_all may filter on (equality only)
FILTERABLE_FIELDS = frozenset({"id", "name", "display_name", "type", "path"})


class DocumentRepository(Protocol):
    """Repository for document metadata."""

    async def find_all(self, filters: Mapping[str, Any] | None = None) -> list[Document]:
        """List documents matching equality filters.

        Args:
            filters: Field/value pairs; keys must be in FILTERABLE_FIELDS

        Returns:
            Matching documents ordered by display name ascending

        Raises:
            InvalidFilterError: If a filter key is not filterable
            RepositoryError: On storage failure
        """
        ...

    async def find_by_id(self, document_id: str) -> Document | None:
        """Get document by ID.

        Args:
            document_id: Document ID

        Returns:
            Document or None if not found
        """
        ...

    async def exists_by_path(self, path: str) -> bool:
        """Check whether a document already records `path`."""
        ...

    async def insert(self, document: Document) -> None:
        """Insert a new document row.

        Raises:
            DocumentConflictError: If a row already holds `document.path`
            RepositoryError: On any other storage failure
        """
        ...

    async def update(self, document: Document) -> Document:
        """Persist mutable fields (description, display name, type, updated).

        Raises:
            DocumentNotFoundError: If the row disappeared
            RepositoryError: On storage failure
        """
        ...

    async def delete(self, document_id: str) -> None:
        """Delete a document row.

        Raises:
            DocumentNotFoundError: If no row has this ID
            RepositoryError: On storage failure
        """
        ...

    async def upsert_stream(self, documents: AsyncIterator[Document]) -> int:
        """Insert each streamed document unless its path is already recorded.

        Consumes `documents` until exhausted. Rows inserted before a failure
        are kept.

        Returns:
            Number of newly inserted documents

        Raises:
            RepositoryError: On the first storage failure
        """
        ...

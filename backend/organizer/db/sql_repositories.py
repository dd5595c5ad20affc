"""SQL implementations of repository interfaces."""

import logging
from collections.abc import AsyncIterator, Mapping
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Insert, delete, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.organizer.db.models import DocumentRow, TaggedResource
from backend.organizer.db.repositories import FILTERABLE_FIELDS
from backend.organizer.docs.errors import (
    DocumentConflictError,
    DocumentNotFoundError,
    InvalidFilterError,
    RepositoryError,
)
from backend.organizer.models.docs import Document, DocumentType

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def _as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps (SQLite drops the offset)."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _to_document(row: DocumentRow) -> Document:
    return Document(
        id=row.id,
        display_name=row.display_name,
        name=row.name,
        path=row.path,
        type=DocumentType(row.type),
        description=row.description or "",
        tags=[tagged.id for tagged in row.tagged_resources],
        created=_as_utc(row.created),
        updated=_as_utc(row.updated),
    )


def _row_values(document: Document) -> dict[str, Any]:
    values: dict[str, Any] = {
        "id": document.id,
        "description": document.description,
        "display_name": document.display_name,
        "name": document.name,
        "type": document.type.value,
        "path": document.path,
        "updated": document.updated,
    }
    if document.created is not None:
        values["created"] = document.created
    return values


class SqlDocumentRepository:
    """SQL implementation of DocumentRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_all(self, filters: Mapping[str, Any] | None = None) -> list[Document]:
        """List documents matching equality filters, ordered by display name."""
        query = select(DocumentRow).execution_options(populate_existing=True)

        for field, value in (filters or {}).items():
            if field not in FILTERABLE_FIELDS:
                raise InvalidFilterError(
                    "unsupported filter field", operation="find_all", field=field
                )
            if isinstance(value, DocumentType):
                value = value.value
            query = query.where(getattr(DocumentRow, field) == value)

        query = query.order_by(DocumentRow.display_name.asc())

        try:
            result = await self._session.execute(query)
            rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"[find_all] unable to fetch results: {e}")
            raise RepositoryError("unable to fetch results", operation="find_all") from e

        return [_to_document(row) for row in rows]

    async def find_by_id(self, document_id: str) -> Document | None:
        """Get document by ID."""
        try:
            result = await self._session.execute(
                select(DocumentRow)
                .where(DocumentRow.id == document_id)
                .execution_options(populate_existing=True)
            )
            row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"[find_by_id] unable to fetch document {document_id}: {e}")
            raise RepositoryError(
                "unable to fetch document", operation="find_by_id", id=document_id
            ) from e

        if row is None:
            return None

        return _to_document(row)

    async def exists_by_path(self, path: str) -> bool:
        """Check whether a document already records `path`."""
        try:
            result = await self._session.execute(
                select(DocumentRow.id).where(DocumentRow.path == path).limit(1)
            )
            return result.first() is not None
        except SQLAlchemyError as e:
            logger.error(f"[exists_by_path] unable to check path {path}: {e}")
            raise RepositoryError(
                "unable to check path", operation="exists_by_path", path=path
            ) from e

    async def insert(self, document: Document) -> None:
        """Insert a new document row."""
        self._session.add(DocumentRow(**_row_values(document)))
        try:
            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            logger.warning(f"[insert] path {document.path} is already taken: {e.orig}")
            raise DocumentConflictError(
                "a document is already stored under this name",
                operation="insert",
                id=document.id,
                path=document.path,
            ) from e
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.warning(f"[insert] unable to insert doc {document.id}: {e}")
            raise RepositoryError(
                "unable to insert doc metadata",
                operation="insert",
                id=document.id,
                path=document.path,
            ) from e

    async def update(self, document: Document) -> Document:
        """Persist mutable fields of an existing document."""
        stmt = (
            update(DocumentRow)
            .where(DocumentRow.id == document.id)
            .values(
                description=document.description,
                display_name=document.display_name,
                type=document.type.value,
                updated=document.updated,
            )
        )

        try:
            result = await self._session.execute(stmt)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.error(f"[update] unable to update doc {document.id}: {e}")
            raise RepositoryError("unable to update doc", operation="update", id=document.id) from e

        if result.rowcount == 0:
            raise DocumentNotFoundError("document does not exist", operation="update", id=document.id)

        return document

    async def delete(self, document_id: str) -> None:
        """Delete a document row and its tag assignments."""
        try:
            await self._session.execute(
                delete(TaggedResource).where(TaggedResource.resource_id == document_id)
            )
            result = await self._session.execute(
                delete(DocumentRow).where(DocumentRow.id == document_id)
            )
            if result.rowcount == 0:
                await self._session.rollback()
                raise DocumentNotFoundError(
                    "document does not exist", operation="delete", id=document_id
                )
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.warning(f"[delete] unable to delete doc {document_id}: {e}")
            raise RepositoryError("unable to delete", operation="delete", id=document_id) from e

    def _insert_ignoring_known_path(self, document: Document) -> Insert:
        """INSERT ... ON CONFLICT (path) DO NOTHING for the bound dialect."""
        dialect = self._session.get_bind().dialect.name
        dialect_insert = _DIALECT_INSERTS.get(dialect)
        if dialect_insert is None:
            raise RepositoryError(
                "conflict-ignoring insert not supported", operation="upsert_stream", dialect=dialect
            )
        return (
            dialect_insert(DocumentRow)
            .values(**_row_values(document))
            .on_conflict_do_nothing(index_elements=["path"])
        )

    async def upsert_stream(self, documents: AsyncIterator[Document]) -> int:
        """Insert streamed documents whose path is not yet recorded.

        The existence check and the insert are one statement, so concurrent
        writers for the same new path cannot both insert. Each row is
        committed on its own; a failure leaves earlier rows in place.
        """
        count = 0
        async for document in documents:
            stmt = self._insert_ignoring_known_path(document)
            try:
                result = await self._session.execute(stmt)
                await self._session.commit()
            except SQLAlchemyError as e:
                await self._session.rollback()
                logger.error(f"[upsert_stream] unable to upsert document {document.path}: {e}")
                raise RepositoryError(
                    "unable to upsert document", operation="upsert_stream", path=document.path
                ) from e

            if result.rowcount:
                count += 1

        logger.info("[upsert_stream] documents added", extra={"structured": {"count": count}})
        return count

"""Storage reconciliation pipeline.

A producer task walks the blob store and turns every `.pdf` key into a draft
document; the repository consumes the drafts through a bounded queue and
inserts those whose path is not yet recorded. The first hard error on either
side ends the run. There is no resume: keys not yet consumed stay
unprocessed and rows already inserted are kept.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from pathlib import PurePosixPath
from uuid import uuid4

from backend.organizer.adapters.blob_store import BlobStore
from backend.organizer.db.repositories import DocumentRepository
from backend.organizer.models.docs import Document, DocumentType

logger = logging.getLogger(__name__)

SCANNED_EXTENSION = ".pdf"


def derive_display_name(key: str) -> str:
    """Strip directory and extension: "shelf/My Book.pdf" -> "My Book"."""
    return PurePosixPath(key).stem


def synthesize_document(key: str, document_type: DocumentType) -> Document | None:
    """Build a draft document for `key`, or None if the key is not scanned."""
    if PurePosixPath(key).suffix != SCANNED_EXTENSION:
        return None

    name = derive_display_name(key)
    return Document(
        id=str(uuid4()),
        display_name=name,
        name=name,
        path=key,
        type=document_type,
        created=datetime.now(UTC),
    )


async def _produce(
    keys: AsyncIterator[str],
    queue: asyncio.Queue[Document | None],
    document_type: DocumentType,
) -> None:
    """Feed synthesized documents into `queue`, then close it."""
    try:
        async for key in keys:
            document = synthesize_document(key, document_type)
            if document is None:
                logger.debug(f"[scan] skipping {key}")
                continue
            await queue.put(document)
    finally:
        # A cancelled producer has no consumer left to close the queue for
        task = asyncio.current_task()
        if task is None or not task.cancelling():
            await queue.put(None)


async def _drain(queue: asyncio.Queue[Document | None]) -> AsyncIterator[Document]:
    """Yield queued documents until the producer puts None."""
    while (document := await queue.get()) is not None:
        yield document


async def run_scan(
    blob_store: BlobStore,
    repository: DocumentRepository,
    *,
    document_type: DocumentType = DocumentType.book,
    queue_size: int = 1,
) -> int:
    """Register every scanned blob that has no metadata row yet.

    Args:
        blob_store: Store to enumerate
        repository: Repository consuming the stream
        document_type: Type given to every synthesized document
        queue_size: Channel capacity between producer and consumer
            (0 means unbounded)

    Returns:
        Number of newly inserted documents

    Raises:
        StorageError: If enumeration fails
        RepositoryError: If an insert fails
    """
    queue: asyncio.Queue[Document | None] = asyncio.Queue(maxsize=queue_size)
    producer = asyncio.create_task(_produce(blob_store.list_keys(), queue, document_type))

    try:
        inserted = await repository.upsert_stream(_drain(queue))
    except BaseException:
        producer.cancel()
        await asyncio.gather(producer, return_exceptions=True)
        raise

    # Surfaces an enumeration failure after the consumer drained what was sent
    await producer
    return inserted

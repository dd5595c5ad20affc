"""Tests for storage reconciliation."""

import io
from collections.abc import AsyncIterator

import pytest

from backend.organizer.adapters.blob_store import InMemoryBlobStore
from backend.organizer.db.inmemory import InMemoryDocumentRepository
from backend.organizer.docs.errors import RepositoryError, StorageError
from backend.organizer.docs.scan import derive_display_name, run_scan, synthesize_document
from backend.organizer.docs.service import DocumentService
from backend.organizer.models.docs import Document, DocumentDraft, DocumentType


class FailingListingBlobStore(InMemoryBlobStore):
    """Yields its keys, then fails as a broken listing page would."""

    async def list_keys(self) -> AsyncIterator[str]:
        for key in list(self.objects):
            yield key
        raise StorageError("unable to fetch object listing", operation="list_keys")


class FailingAfterRepository(InMemoryDocumentRepository):
    """Fails on the insert after `limit` successful ones."""

    def __init__(self, limit: int) -> None:
        super().__init__()
        self._limit = limit

    async def insert(self, document: Document) -> None:
        if self.insert_calls >= self._limit:
            self.insert_calls += 1
            raise RepositoryError("unable to upsert document", operation="upsert_stream", path=document.path)
        await super().insert(document)


def test_derive_display_name_strips_directory_and_extension() -> None:
    assert derive_display_name("shelf/nested/My Book.pdf") == "My Book"
    assert derive_display_name("plain.pdf") == "plain"


def test_synthesize_document_for_pdf() -> None:
    document = synthesize_document("papers/attention.pdf", DocumentType.paper)

    assert document is not None
    assert document.id
    assert document.name == "attention"
    assert document.display_name == "attention"
    assert document.path == "papers/attention.pdf"
    assert document.type == DocumentType.paper
    assert document.created is not None


@pytest.mark.parametrize("key", ["notes.txt", "book.epub", "README", "archive.PDF.zip"])
def test_synthesize_document_skips_other_keys(key: str) -> None:
    assert synthesize_document(key, DocumentType.book) is None


@pytest.mark.asyncio
async def test_scan_inserts_only_pdf_keys(repository: InMemoryDocumentRepository) -> None:
    blob_store = InMemoryBlobStore({"a.pdf": b"", "b.txt": b"", "c/": b""})

    inserted = await run_scan(blob_store, repository)

    assert inserted == 1
    documents = await repository.find_all()
    assert [(d.name, d.path, d.type) for d in documents] == [("a", "a.pdf", DocumentType.book)]


@pytest.mark.asyncio
async def test_second_scan_inserts_nothing(repository: InMemoryDocumentRepository) -> None:
    blob_store = InMemoryBlobStore({"a.pdf": b"", "shelf/b.pdf": b""})

    assert await run_scan(blob_store, repository) == 2
    assert await run_scan(blob_store, repository) == 0
    assert len(await repository.find_all()) == 2


@pytest.mark.asyncio
async def test_scan_skips_paths_already_recorded(
    service: DocumentService,
    repository: InMemoryDocumentRepository,
    blob_store: InMemoryBlobStore,
    pdf_bytes: bytes,
) -> None:
    await service.add(io.BytesIO(pdf_bytes), DocumentDraft(display_name="Uploaded", name="up.pdf"))
    blob_store.objects["orphan.pdf"] = pdf_bytes

    assert await service.scan() == 1

    names = sorted(d.display_name for d in await repository.find_all())
    assert names == ["Uploaded", "orphan"]


@pytest.mark.asyncio
@pytest.mark.parametrize("queue_size", [0, 1, 5])
async def test_scan_queue_size_does_not_change_result(queue_size: int) -> None:
    repository = InMemoryDocumentRepository()
    blob_store = InMemoryBlobStore({f"{i}.pdf": b"" for i in range(10)})

    assert await run_scan(blob_store, repository, queue_size=queue_size) == 10


@pytest.mark.asyncio
async def test_scan_stops_on_first_insert_error() -> None:
    repository = FailingAfterRepository(limit=1)
    blob_store = InMemoryBlobStore({"a.pdf": b"", "b.pdf": b"", "c.pdf": b"", "d.pdf": b""})

    with pytest.raises(RepositoryError):
        await run_scan(blob_store, repository)

    # The first insert is kept, nothing after the failure is attempted
    assert [d.path for d in await repository.find_all()] == ["a.pdf"]
    assert repository.insert_calls == 2


@pytest.mark.asyncio
async def test_scan_surfaces_listing_error(repository: InMemoryDocumentRepository) -> None:
    blob_store = FailingListingBlobStore({"a.pdf": b""})

    with pytest.raises(StorageError):
        await run_scan(blob_store, repository)

    # Keys received before the failure are still consumed
    assert [d.path for d in await repository.find_all()] == ["a.pdf"]


@pytest.mark.asyncio
async def test_service_scan_uses_requested_type(repository: InMemoryDocumentRepository) -> None:
    service = DocumentService(repository, InMemoryBlobStore({"x.pdf": b""}))

    assert await service.scan(DocumentType.paper) == 1

    documents = await repository.find_all()
    assert documents[0].type == DocumentType.paper

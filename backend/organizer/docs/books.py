"""Book-scoped view over the document service."""

from typing import BinaryIO

from backend.organizer.docs.service import DocumentService
from backend.organizer.models.docs import Document, DocumentDraft, DocumentType


class BookService:
    """Every read is restricted to books and every upload becomes a book."""

    def __init__(self, documents: DocumentService) -> None:
        self._documents = documents

    async def find_all(self) -> list[Document]:
        return await self._documents.find_all({"type": DocumentType.book})

    async def find_by_id(self, document_id: str) -> Document:
        return await self._documents.find_by_id(document_id, DocumentType.book)

    async def add(self, stream: BinaryIO, draft: DocumentDraft) -> Document:
        return await self._documents.add(stream, draft.model_copy(update={"type": DocumentType.book}))

"""Document endpoints - list, fetch, edit, delete, content and scan."""

import mimetypes
from collections.abc import Iterator
from typing import Annotated, Any, BinaryIO
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from backend.organizer.api.dependencies import get_document_service
from backend.organizer.docs.service import DocumentService
from backend.organizer.models.docs import Document, DocumentType, DocumentUpdate, ScanResult

router = APIRouter(prefix="/documents", tags=["documents"])

CONTENT_CHUNK_SIZE = 64 * 1024


def _iter_content(reader: BinaryIO) -> Iterator[bytes]:
    try:
        while chunk := reader.read(CONTENT_CHUNK_SIZE):
            yield chunk
    finally:
        reader.close()


def _content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and an RFC 5987 UTF-8 name."""
    fallback = "".join(c if c.isascii() and c.isprintable() and c not in '"\\' else "_" for c in filename)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


@router.get("/", response_model=list[Document])
async def list_documents(
    service: Annotated[DocumentService, Depends(get_document_service)],
    document_type: Annotated[DocumentType | None, Query(alias="type")] = None,
) -> list[Document]:
    """List documents ordered by display name, optionally by type."""
    filters: dict[str, Any] = {}
    if document_type is not None:
        filters["type"] = document_type
    return await service.find_all(filters)


@router.put("/scan", response_model=ScanResult)
async def scan_documents(
    service: Annotated[DocumentService, Depends(get_document_service)],
) -> ScanResult:
    """Register stored blobs that have no document yet.

    Returns:
        Number of documents inserted by this run
    """
    inserted = await service.scan()
    return ScanResult(inserted=inserted)


@router.get("/{document_id}", response_model=Document)
async def get_document(
    document_id: str,
    service: Annotated[DocumentService, Depends(get_document_service)],
) -> Document:
    """Fetch a document; `path` is a time-limited download URL."""
    return await service.find_by_id(document_id)


@router.get("/{document_id}/content")
async def get_document_content(
    document_id: str,
    service: Annotated[DocumentService, Depends(get_document_service)],
) -> StreamingResponse:
    """Stream the stored file."""
    document, reader = await service.open_content(document_id)
    media_type = mimetypes.guess_type(document.name)[0] or "application/octet-stream"
    return StreamingResponse(
        _iter_content(reader),
        media_type=media_type,
        headers={"Content-Disposition": _content_disposition(document.name)},
    )


@router.patch("/{document_id}", response_model=Document)
async def update_document(
    document_id: str,
    changes: DocumentUpdate,
    service: Annotated[DocumentService, Depends(get_document_service)],
) -> Document:
    """Update description, display name and type; empty fields are left alone."""
    return await service.update_fields(document_id, changes)


@router.delete("/{document_id}")
async def delete_document(
    document_id: str,
    service: Annotated[DocumentService, Depends(get_document_service)],
) -> dict[str, str]:
    """Delete the document record. The stored file is kept."""
    await service.delete(document_id)
    return {"status": "success"}

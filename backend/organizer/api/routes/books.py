"""Book endpoints - GET /books, GET /books/{id}, POST /books."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import ValidationError

from backend.organizer.api.dependencies import get_book_service
from backend.organizer.docs.books import BookService
from backend.organizer.models.docs import Document, DocumentDraft, DocumentType

router = APIRouter(prefix="/books", tags=["books"])


@router.get("/", response_model=list[Document])
async def list_books(
    service: Annotated[BookService, Depends(get_book_service)],
) -> list[Document]:
    """List books ordered by display name."""
    return await service.find_all()


@router.get("/{book_id}", response_model=Document)
async def get_book(
    book_id: str,
    service: Annotated[BookService, Depends(get_book_service)],
) -> Document:
    """Fetch a book; `path` is a time-limited download URL."""
    return await service.find_by_id(book_id)


@router.post("/", response_model=Document, status_code=status.HTTP_201_CREATED)
async def create_book(
    service: Annotated[BookService, Depends(get_book_service)],
    file: Annotated[UploadFile, File(description="EPUB or PDF file")],
    name: Annotated[str, Form(description="Display name")],
) -> Document:
    """Upload a book.

    The file is stored under its original filename; `name` becomes the
    display name.

    Raises:
        HTTPException: 400 if the form fields are unusable
    """
    try:
        draft = DocumentDraft(display_name=name, name=file.filename or "", type=DocumentType.book)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid form: {e.error_count()} field error(s)",
        ) from e

    try:
        return await service.add(file.file, draft)
    finally:
        await file.close()

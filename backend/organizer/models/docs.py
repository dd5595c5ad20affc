"""Document domain models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DocumentType(str, Enum):
    """Closed set of document subtypes."""

    book = "book"
    paper = "paper"


class Document(BaseModel):
    """Document metadata record.

    `path` holds the storage key while the record is persisted; single-item
    lookups replace it with a time-limited access URL before returning.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    display_name: str
    name: str
    path: str = ""
    type: DocumentType = DocumentType.book
    description: str = ""
    tags: list[str] = Field(default_factory=list, alias="tag_ids")
    created: datetime | None = None
    updated: datetime | None = None


class DocumentDraft(BaseModel):
    """Caller-supplied fields for a new upload."""

    display_name: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=255, description="Original filename")
    type: DocumentType = DocumentType.book
    description: str = Field("", max_length=1024)


class DocumentUpdate(BaseModel):
    """Partial update; empty strings leave the stored value unchanged.

    `type` stays a plain string so values outside the closed set reach the
    service and are rejected there.
    """

    description: str = Field("", max_length=1024)
    display_name: str = Field("", max_length=255)
    type: str = ""


class ScanResult(BaseModel):
    """Outcome of a reconciliation run."""

    status: str = "success"
    inserted: int = Field(..., ge=0)

"""Models package - re-exports for convenience."""

from backend.organizer.models.docs import (
    Document,
    DocumentDraft,
    DocumentType,
    DocumentUpdate,
    ScanResult,
)

__all__ = [
    "Document",
    "DocumentDraft",
    "DocumentType",
    "DocumentUpdate",
    "ScanResult",
]

"""Error taxonomy for the document pipeline.

Every error carries the operation that raised it plus the identifiers needed
to trace it (document id, storage path, ...). The HTTP layer maps the
families below to status codes:

- DocumentValidationError -> 400 (rejected before any side effect)
- DocumentNotFoundError   -> 404
- DocumentConflictError   -> 409
- DependencyError         -> 500 (blob store / metadata repository failures)
"""

from typing import Any


class DocumentError(Exception):
    """Base class for document pipeline errors."""

    def __init__(self, message: str, *, operation: str | None = None, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.context = context

    def __str__(self) -> str:
        text = f"{self.operation}: {self.message}" if self.operation else self.message
        if self.context:
            details = ", ".join(f"{key}={value}" for key, value in self.context.items())
            text = f"{text} ({details})"
        return text


class DocumentValidationError(DocumentError):
    """Client input was rejected."""

    pass


class InvalidFileTypeError(DocumentValidationError):
    """Uploaded stream is not a supported file type."""

    pass


class UnsupportedDocumentTypeError(DocumentValidationError):
    """Requested document type is outside the closed type set."""

    pass


class InvalidFilterError(DocumentValidationError):
    """Listing filter names a field that cannot be filtered on."""

    pass


class DocumentNotFoundError(DocumentError):
    """No document exists for the requested identifier."""

    pass


class DocumentConflictError(DocumentError):
    """A document already records the requested storage path."""

    pass


class DependencyError(DocumentError):
    """A downstream collaborator failed."""

    pass


class StorageError(DependencyError):
    """Blob store operation failed."""

    pass


class RepositoryError(DependencyError):
    """Metadata repository operation failed."""

    pass


class DatabaseUnavailableError(DependencyError):
    """Database could not be reached within the retry budget."""

    pass

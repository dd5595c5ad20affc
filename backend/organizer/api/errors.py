"""Map document pipeline errors onto HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from backend.organizer.docs.errors import (
    DependencyError,
    DocumentConflictError,
    DocumentError,
    DocumentNotFoundError,
    DocumentValidationError,
)

logger = logging.getLogger(__name__)

# Most specific class first
ERROR_STATUS: tuple[tuple[type[DocumentError], int], ...] = (
    (DocumentValidationError, status.HTTP_400_BAD_REQUEST),
    (DocumentNotFoundError, status.HTTP_404_NOT_FOUND),
    (DocumentConflictError, status.HTTP_409_CONFLICT),
    (DependencyError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for(exc: DocumentError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def document_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, DocumentError)
    code = status_for(exc)

    if code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            f"[api] {request.method} {request.url.path} failed: {exc}",
            extra={"structured": {"code": code, "operation": exc.operation, **exc.context}},
        )
        # Dependency details stay in the log
        detail = "Server Error"
    else:
        logger.info(f"[api] {request.method} {request.url.path} -> {code}: {exc}")
        detail = exc.message

    return JSONResponse(status_code=code, content={"detail": detail, "operation": exc.operation})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DocumentError, document_error_handler)

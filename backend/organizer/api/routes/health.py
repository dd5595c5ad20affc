"""Health check endpoints.

- /health is liveness only
- /healthz checks database connectivity and returns 503 when it fails
"""

from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from backend.organizer.db.engine import get_async_engine

router = APIRouter()


async def check_db() -> tuple[bool, str]:
    """Check database connectivity.

    Returns:
        (is_ok, status_message)
    """
    try:
        async with get_async_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return (True, "ok")
    except (SQLAlchemyError, OSError) as e:
        return (False, f"error: {type(e).__name__}")


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz() -> dict[str, Any] | JSONResponse:
    """Readiness check.

    Returns:
        200 with component status if the database answers
        503 otherwise
    """
    db_ok, db_status = await check_db()

    response_body = {
        "status": "ok" if db_ok else "degraded",
        "components": {"db": db_status},
    }

    if not db_ok:
        return JSONResponse(content=response_body, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

    return response_body

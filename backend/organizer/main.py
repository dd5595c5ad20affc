"""FastAPI application."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.organizer.api.dependencies import get_blob_store, get_cover_notifier
from backend.organizer.api.errors import register_exception_handlers
from backend.organizer.api.routes.books import router as books_router
from backend.organizer.api.routes.documents import router as documents_router
from backend.organizer.api.routes.health import router as health_router
from backend.organizer.api.routes.metrics import router as metrics_router
from backend.organizer.config import get_settings
from backend.organizer.db.engine import connect_with_retry, dispose_async_engine, get_async_engine
from backend.organizer.db.migrations import run_migrations
from backend.organizer.utils.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("[startup] starting book organizer")

    # Unreachable database after the retry budget aborts startup
    await connect_with_retry(
        get_async_engine(),
        attempts=settings.db_connect_attempts,
        backoff_seconds=settings.db_connect_backoff_seconds,
    )

    if settings.run_migrations_on_startup:
        logger.info("[startup] running database migrations")
        await asyncio.to_thread(run_migrations, settings)

    await get_blob_store().ensure_bucket()
    logger.info("[startup] startup complete")

    yield

    logger.info("[shutdown] stopping book organizer")
    await get_cover_notifier().aclose()
    get_cover_notifier.cache_clear()
    await dispose_async_engine()


app = FastAPI(title="Book Organizer API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_allowed_origins,
    allow_methods=["GET", "HEAD", "POST", "PUT", "PATCH", "OPTIONS", "DELETE"],
    allow_headers=["X-Requested-With", "Content-Type", "Authorization"],
)

register_exception_handlers(app)

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(documents_router)
app.include_router(books_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Book Organizer API", "version": "0.1.0"}

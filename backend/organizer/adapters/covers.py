"""Cover thumbnail generator client.

Notifications are best effort: they run as detached tasks, are never retried,
and their failures only reach the log and the metrics.
"""

import asyncio
import logging

import httpx

from backend.organizer.config import Settings
from backend.organizer.utils.metrics import cover_notifications_total

logger = logging.getLogger(__name__)


def normalize_cover_endpoint(endpoint: str) -> str:
    """Build the thumbnail URL, defaulting to https when no scheme is given."""
    endpoint = endpoint.strip().rstrip("/")
    if not endpoint:
        return ""
    if not endpoint.startswith(("http://", "https://")):
        endpoint = "https://" + endpoint.lstrip("/")
    return endpoint + "/thumbnail/"


class CoverNotifier:
    """Fire-and-forget client for the cover generator."""

    def __init__(
        self,
        endpoint: str,
        *,
        verify_tls: bool = True,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = normalize_cover_endpoint(endpoint)
        self._client = client or httpx.AsyncClient(verify=verify_tls, timeout=timeout)
        self._tasks: set[asyncio.Task[bool]] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> "CoverNotifier":
        return cls(
            settings.cover_endpoint,
            verify_tls=settings.cover_verify_tls,
            timeout=settings.cover_timeout_seconds,
        )

    @property
    def pending(self) -> int:
        """Number of notifications still in flight."""
        return len(self._tasks)

    def notify(self, document_id: str, path: str) -> None:
        """Schedule a cover request and return immediately."""
        if not self.url:
            logger.warning(f"[covers] cover endpoint not set, skipping document {document_id}")
            cover_notifications_total.labels(outcome="skipped").inc()
            return

        task = asyncio.create_task(self.request_cover(document_id, path))
        # Hold a reference so the task is not collected mid-flight
        self._tasks.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task[bool]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"[covers] cover request crashed: {error!r}")
            cover_notifications_total.labels(outcome="error").inc()

    async def request_cover(self, document_id: str, path: str) -> bool:
        """POST the cover request; returns whether the generator accepted it."""
        logger.info(f"[covers] calling {self.url}")
        try:
            response = await self._client.post(self.url, json={"id": document_id, "path": path})
        except httpx.HTTPError as e:
            logger.error(f"[covers] unable to create cover for {document_id}: {e}")
            cover_notifications_total.labels(outcome="error").inc()
            return False

        if response.status_code != httpx.codes.CREATED:
            logger.error(
                "[covers] request failed",
                extra={"structured": {"id": document_id, "code": response.status_code}},
            )
            cover_notifications_total.labels(outcome="rejected").inc()
            return False

        logger.info(f"[covers] cover created for {document_id}")
        cover_notifications_total.labels(outcome="created").inc()
        return True

    async def aclose(self) -> None:
        """Let in-flight notifications finish, then close the HTTP client."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self._client.aclose()

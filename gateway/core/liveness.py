# gateway/core/liveness.py
"""Per-worker last-seen tracking."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from gateway.infra.logging_config import get_logger
from gateway.infra.redis_store import QueueStore

logger = get_logger(__name__)

UNKNOWN_HOST = "unknown"


def resolve_host_identifier(header_value: str | None, client_host: str | None) -> str:
    """
    Pick the key a worker's liveness is tracked under.

    The explicit host header wins when it is non-blank; otherwise the
    observed network origin of the request is used.
    """
    if header_value is not None and header_value.strip():
        return header_value.strip()
    if client_host:
        return client_host
    return UNKNOWN_HOST


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LastSeenTracker:
    """Upserts one timestamp per host into the last-seen hash."""

    def __init__(self, store: QueueStore, clock: Callable[[], datetime] = _utc_now):
        self.store = store
        self.clock = clock

    async def record(self, host: str) -> str:
        """Store the current time for ``host`` and return the written value."""
        seen_at = self.clock().isoformat()
        await self.store.set_last_seen(host, seen_at)
        logger.debug(f"Worker seen: host={host}", extra={"worker_host": host})
        return seen_at

    async def snapshot(self) -> dict[str, str]:
        return await self.store.get_last_seen()

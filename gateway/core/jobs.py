# gateway/core/jobs.py
"""
Job handoff: one pop per request, at most once per item.

An empty queue is a normal answer for polling workers and yields ``None``.
A popped item that is not valid JSON is already consumed; the request
fails instead of silently moving on to the next item.
"""
from __future__ import annotations

import json
from typing import Any

from gateway.core.errors import MalformedQueuedItemError
from gateway.infra.logging_config import get_logger, truncate_for_log
from gateway.infra.metrics import GatewayMetrics
from gateway.infra.redis_store import QueueStore

logger = get_logger(__name__)

DEFAULT_QUEUE_LABEL = "default"


def queue_label(queue: str | None) -> str:
    """Name used for logs and metric labels."""
    return queue or DEFAULT_QUEUE_LABEL


def deserialize_job(raw: str) -> Any:
    """Decode a queued item. The job's shape is not validated."""
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedQueuedItemError(f"Queued item is not valid JSON: {exc}") from exc


def serialize_job(job: Any) -> str:
    return json.dumps(job)


class JobFetcher:
    """Pops jobs from named queues of a QueueStore."""

    def __init__(self, store: QueueStore):
        self.store = store

    async def fetch(self, queue: str | None = None) -> Any | None:
        """
        Pop the oldest job of ``queue`` (default queue when None).

        Returns:
            The decoded job, or None if the queue is empty.
        """
        label = queue_label(queue)
        raw = await self.store.pop_job(queue)

        if raw is None:
            GatewayMetrics.fetch_empty(label)
            return None

        try:
            job = deserialize_job(raw)
        except MalformedQueuedItemError:
            logger.error(
                f"Dropped malformed job from queue={label}: {truncate_for_log(raw)}",
                extra={"queue": label},
            )
            raise

        GatewayMetrics.job_fetched(label)
        logger.info(f"Job handed out from queue={label}", extra={"queue": label})
        return job

    async def enqueue(self, job: Any, queue: str | None = None) -> int:
        """Push a job at the producer end of ``queue``; returns the new length."""
        return await self.store.push_job(queue, serialize_job(job))

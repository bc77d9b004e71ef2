# gateway/transport/fetch_handler.py
"""
Worker job fetch.

Handles:
- GET /fetch           -- pop from the default queue
- GET /fetch/{queue}   -- pop from a named queue

Per request: token check (route dependency) -> version gate ->
last-seen upsert -> pop -> {"job": <job or null>}.
"""
from __future__ import annotations

from fastapi import Request
from starlette.datastructures import Headers

from gateway.config import Settings
from gateway.core.compat import WorkerVersions, check_compatibility
from gateway.core.errors import OutdatedWorkerError
from gateway.core.jobs import JobFetcher, queue_label
from gateway.core.liveness import LastSeenTracker, resolve_host_identifier
from gateway.infra.logging_config import get_logger, LogContext
from gateway.infra.metrics import GatewayMetrics
from gateway.infra.redis_store import QueueStore

logger = get_logger(__name__)

WORKER_HOST_HEADER = "x-frigg-worker-host"
WORKER_VERSION_HEADER = "x-frigg-worker-version"
SETTINGS_VERSION_HEADER = "x-frigg-settings-version"
COVERAGE_VERSION_HEADER = "x-frigg-coverage-version"


def _header(headers: Headers, name: str) -> str | None:
    value = headers.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def worker_versions_from_headers(headers: Headers) -> WorkerVersions:
    return WorkerVersions(
        worker=_header(headers, WORKER_VERSION_HEADER),
        settings=_header(headers, SETTINGS_VERSION_HEADER),
        coverage=_header(headers, COVERAGE_VERSION_HEADER),
    )


async def fetch_job_handler(
    request: Request,
    store: QueueStore,
    current: Settings,
    queue: str | None = None,
) -> dict:
    """
    Serve at most one job to an authenticated worker.

    Raises:
        OutdatedWorkerError: a compatibility requirement is unmet; nothing
            is popped and the worker is not marked as seen.
        MalformedQueuedItemError: the popped item is not JSON.
        StoreUnavailableError: the store failed.
    """
    label = queue_label(queue)
    host = resolve_host_identifier(
        request.headers.get(WORKER_HOST_HEADER),
        request.client.host if request.client else None,
    )
    log_ctx = LogContext(logger, worker_host=host, queue=label)

    versions = worker_versions_from_headers(request.headers)
    try:
        check_compatibility(versions, current.compatibility_requirements())
    except OutdatedWorkerError as exc:
        GatewayMetrics.worker_outdated(exc.requirement)
        log_ctx.info(f"Outdated worker turned away: {exc.detail}")
        raise

    with GatewayMetrics.track_fetch_time(label):
        await LastSeenTracker(store).record(host)
        job = await JobFetcher(store).fetch(queue)

    if job is None:
        log_ctx.debug("No job available")

    return {"job": job}

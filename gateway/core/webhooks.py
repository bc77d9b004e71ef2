# gateway/core/webhooks.py
"""
Webhook normalisation.

Every provider payload is wrapped in the same envelope::

    {"service": <route slug or provider name>,
     "type":    <event name from the provider header, or "unknown">,
     "payload": <body, verbatim>}

and appended to the shared webhook queue. The envelope is never mutated
after it is queued.
"""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, Mapping

from gateway.core.errors import MalformedWebhookBodyError
from gateway.infra.logging_config import get_logger
from gateway.infra.metrics import GatewayMetrics
from gateway.infra.redis_store import QueueStore

logger = get_logger(__name__)

UNKNOWN_EVENT = "unknown"
GITHUB_SERVICE = "github"

GITHUB_EVENT_HEADER = "X-GitHub-Event"

# Checked in order on the generic route
EVENT_HEADERS = (
    GITHUB_EVENT_HEADER,
    "X-Gitlab-Event",
    "X-Event-Key",       # Bitbucket
    "X-Gitea-Event",
)


@dataclass(frozen=True)
class WebhookEnvelope:
    service: str
    type: str
    payload: Any

    def to_json(self) -> str:
        return json.dumps(asdict(self))


def classify_event(headers: Mapping[str, str], candidates: tuple[str, ...] = EVENT_HEADERS) -> str:
    """
    Event type from the first non-empty provider header.

    ``headers`` must do case-insensitive lookups (Starlette ``Headers`` does).
    """
    for name in candidates:
        value = headers.get(name)
        if value and value.strip():
            return value.strip()
    return UNKNOWN_EVENT


def parse_webhook_body(body: bytes) -> Any:
    """
    Decode a webhook body.

    An empty body is accepted as ``{}``; anything else must be JSON.
    """
    if not body or not body.strip():
        return {}
    try:
        return json.loads(body)
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedWebhookBodyError(f"Webhook body is not JSON: {exc}") from exc


def build_envelope(service: str, headers: Mapping[str, str], payload: Any) -> WebhookEnvelope:
    candidates = (GITHUB_EVENT_HEADER,) if service == GITHUB_SERVICE else EVENT_HEADERS
    return WebhookEnvelope(
        service=service,
        type=classify_event(headers, candidates),
        payload=payload,
    )


class WebhookIngestor:
    """Appends envelopes to the webhook queue."""

    def __init__(self, store: QueueStore):
        self.store = store

    async def ingest(self, envelope: WebhookEnvelope) -> int:
        """
        Durably enqueue ``envelope``.

        Returns the queue length after the push. Store failures propagate,
        so a caller only acknowledges what was actually written.
        """
        queue_length = await self.store.push_webhook(envelope.to_json())
        GatewayMetrics.webhook_enqueued(envelope.service)
        logger.info(
            f"Webhook queued: type={envelope.type}, depth={queue_length}",
            extra={"service": envelope.service},
        )
        return queue_length

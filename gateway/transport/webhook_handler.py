# gateway/transport/webhook_handler.py
"""
Source-control webhook intake.

Handles:
- POST /webhooks/github   -- service fixed to "github"
- POST /webhooks/{slug}   -- service taken from the route

The envelope is written to the webhook queue before the 202 goes out;
a store failure surfaces as 503 instead of a false acceptance. No
signature verification is done here.
"""
from __future__ import annotations

from fastapi import Request, Response

from gateway.core.webhooks import WebhookIngestor, build_envelope, parse_webhook_body
from gateway.infra.logging_config import get_logger, LogContext
from gateway.infra.redis_store import QueueStore

logger = get_logger(__name__)


async def webhook_handler(request: Request, store: QueueStore, service: str) -> Response:
    log_ctx = LogContext(logger, service=service)

    body = await request.body()
    payload = parse_webhook_body(body)

    envelope = build_envelope(service, request.headers, payload)
    await WebhookIngestor(store).ingest(envelope)

    log_ctx.debug(f"Webhook accepted: type={envelope.type}, bytes={len(body)}")
    return Response(status_code=202)

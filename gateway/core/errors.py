# gateway/core/errors.py
"""
Typed gateway errors.

Each error maps to a specific HTTP status code and a stable error code.
The transport layer converts ``GatewayError`` subtypes into responses
without embedding business logic in the route handlers.
"""
from __future__ import annotations


class GatewayError(Exception):
    """Base class for all gateway errors."""

    status_code: int = 500
    code: str = "INTERNAL"
    public_message: str = "Internal server error"

    def __init__(self, detail: str | None = None):
        # ``detail`` is for logs only; clients get ``public_message``.
        self.detail = detail or self.public_message
        super().__init__(self.detail)


class AuthRejectedError(GatewayError):
    """Missing or wrong worker token (403, no body)."""

    status_code = 403
    code = "FORBIDDEN"
    public_message = "Forbidden"


class OutdatedWorkerError(GatewayError):
    """A compatibility requirement is not met by the worker (400)."""

    status_code = 400
    code = "OUTDATED"
    public_message = "The worker is outdated. Please update."

    def __init__(self, requirement: str, detail: str | None = None):
        self.requirement = requirement
        super().__init__(detail or f"{requirement} requirement not satisfied")


class MalformedWebhookBodyError(GatewayError):
    """Webhook body could not be parsed (400). Nothing is enqueued."""

    status_code = 400
    code = "MALFORMED_BODY"
    public_message = "The request body could not be parsed."


class MalformedQueuedItemError(GatewayError):
    """A popped queue item is not valid JSON (500). The item stays consumed."""

    status_code = 500


class StoreUnavailableError(GatewayError):
    """Queue store unreachable or protocol error (503)."""

    status_code = 503
    code = "STORE_UNAVAILABLE"
    public_message = "Service temporarily unavailable"

    def __init__(self, operation: str, detail: str | None = None):
        self.operation = operation
        super().__init__(detail or f"store operation failed: {operation}")

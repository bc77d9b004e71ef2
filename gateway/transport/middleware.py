# gateway/transport/middleware.py
import time
import uuid
from typing import Callable
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from gateway.infra.logging_config import (
    LogContext,
    bind_request_id,
    get_logger,
    reset_request_id,
)
from gateway.transport.schemas import error_content
from gateway.transport.security import sanitize_headers_for_logging

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
WORKER_HOST_HEADER = "x-frigg-worker-host"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Bind a request id for the lifetime of the request.

    Workers may send their own X-Request-ID to correlate their polling logs
    with ours; otherwise one is generated. Every record logged while the
    request is handled carries it, without handlers passing it around.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        token = bind_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            reset_request_id(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one line per request start/finish, tagged with the worker host if sent"""

    def __init__(self, app: ASGIApp, enabled: bool = True):
        super().__init__(app)
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.enabled:
            return await call_next(request)

        log_ctx = LogContext(logger, worker_host=request.headers.get(WORKER_HOST_HEADER))
        route = f"{request.method} {request.url.path}"
        started = time.perf_counter()

        log_ctx.info(
            f"Request started: {route}",
            extra={"client_ip": request.client.host if request.client else None},
        )
        log_ctx.debug(
            "Request headers",
            extra={"headers": sanitize_headers_for_logging(dict(request.headers))},
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            log_ctx.error(
                f"Request failed: {route} error={exc.__class__.__name__} "
                f"duration={(time.perf_counter() - started) * 1000:.2f}ms",
                exc_info=True,
            )
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        log_ctx.info(
            f"Request completed: {route} status={response.status_code} duration={duration_ms:.2f}ms",
            extra={"status_code": response.status_code, "duration_ms": duration_ms},
        )
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn unhandled exceptions into a generic 500 without internal details"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(
                f"Unhandled exception: {exc.__class__.__name__}: {exc}",
                exc_info=True,
            )
            return JSONResponse(
                status_code=500,
                content=error_content("INTERNAL", "Internal server error"),
            )

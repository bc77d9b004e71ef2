# gateway/transport/http_app.py
"""
HTTP application for the CI job-dispatch gateway.

Security layers:
1. Public: root redirect, health probes, webhook intake
2. Protected: job fetch and metrics (require the worker token)
3. No internal details in error responses
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from http import HTTPStatus
from fastapi import FastAPI, Request, Depends
from fastapi.responses import JSONResponse, RedirectResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from gateway.config import Settings, get_settings, settings, warn_on_risky_config
from gateway.core.errors import AuthRejectedError, GatewayError
from gateway.core.liveness import LastSeenTracker
from gateway.core.webhooks import GITHUB_SERVICE
from gateway.infra.health_checks_async import get_async_health_checker
from gateway.infra.logging_config import setup_logging, get_logger
from gateway.infra.metrics import get_metrics_collector
from gateway.infra.redis_store import QueueStore, close_store, init_store
from gateway.transport.fetch_handler import fetch_job_handler
from gateway.transport.middleware import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    ErrorHandlingMiddleware,
)
from gateway.transport.schemas import ErrorOut, FetchOut, error_content
from gateway.transport.security import (
    SecurityHeaders,
    check_configured_tokens,
    require_worker_token,
)
from gateway.transport.webhook_handler import webhook_handler

# Initialize logging first
setup_logging(
    level=settings.log_level,
    use_json=settings.is_production
)

logger = get_logger(__name__)


# ============================================================================
# DEPENDENCIES
# ============================================================================

def get_store(request: Request) -> QueueStore:
    """Get the queue store from app state"""
    return request.app.state.store


# ============================================================================
# MIDDLEWARE FOR SECURITY HEADERS
# ============================================================================

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses"""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        return SecurityHeaders.add_security_headers(response)


# ============================================================================
# LIFESPAN
# ============================================================================

@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    """Application lifecycle: startup and shutdown"""

    logger.info(f"Starting gateway: env={settings.app_env}")

    if settings.is_production:
        missing = settings.validate_required_for_production()
        if missing:
            logger.critical(f"Missing required production settings: {missing}")
            raise RuntimeError(f"Missing production config: {missing}")

    check_configured_tokens()

    for msg in warn_on_risky_config(settings):
        logger.warning(f"[config] {msg}")

    fastapi_app.state.store = await init_store(
        settings.redis_url,
        prefix=settings.key_prefix,
        conn_timeout=settings.redis_conn_timeout,
        socket_timeout=settings.redis_socket_timeout,
        max_connections=settings.redis_max_connections,
    )

    if not await fastapi_app.state.store.ping():
        # Not fatal: /ready reports it and requests get 503 until the store is back
        logger.warning("Queue store not reachable at startup")

    logger.info("Gateway startup complete")

    yield

    logger.info("Shutting down gateway")
    await close_store()
    logger.info("Gateway shutdown complete")


# ============================================================================
# CREATE APP
# ============================================================================

app = FastAPI(
    title="CI Dispatch Gateway",
    description="Hands queued build jobs to polling workers and queues SCM webhooks",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None,
    openapi_url=None if settings.is_production else "/openapi.json",
)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(RequestLoggingMiddleware, enabled=settings.enable_request_logging)
app.add_middleware(RequestIDMiddleware)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    """Map typed gateway errors to responses without leaking internals"""
    if exc.status_code >= 500:
        logger.error(f"Gateway error: {exc.__class__.__name__}: {exc.detail}")

    if isinstance(exc, AuthRejectedError):
        return Response(status_code=exc.status_code)

    return JSONResponse(
        status_code=exc.status_code,
        content=error_content(exc.code, exc.public_message),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle routing errors (404/405) with the same error shape"""
    status = HTTPStatus(exc.status_code)
    message = exc.detail if isinstance(exc.detail, str) else status.phrase
    return JSONResponse(
        status_code=exc.status_code,
        content=error_content(status.name, message),
        headers=getattr(exc, "headers", None),
    )


# ============================================================================
# PUBLIC ENDPOINTS (No authentication required)
# ============================================================================

@app.get("/", include_in_schema=False)
def root(current: Settings = Depends(get_settings)):
    """Redirect to the documentation site"""
    return RedirectResponse(url=current.docs_url, status_code=302)


@app.get("/health")
def health():
    """Liveness probe. Does not touch the store."""
    return {"status": "healthy"}


@app.get("/ready")
async def readiness(store: QueueStore = Depends(get_store)):
    """Readiness probe: the queue store must answer"""
    result = await get_async_health_checker(store).run_checks(include_non_critical=False)

    if result["status"] == "unhealthy":
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy"}
        )

    return {"status": "healthy"}


@app.post("/webhooks/github", status_code=202, responses={400: {"model": ErrorOut}})
async def webhook_github(request: Request, store: QueueStore = Depends(get_store)):
    """GitHub webhooks: service is always "github", type from X-GitHub-Event"""
    return await webhook_handler(request, store, GITHUB_SERVICE)


@app.post("/webhooks/{slug}", status_code=202, responses={400: {"model": ErrorOut}})
async def webhook_generic(slug: str, request: Request, store: QueueStore = Depends(get_store)):
    """Any other provider: service is the route slug"""
    return await webhook_handler(request, store, slug)


# ============================================================================
# WORKER ENDPOINTS (worker token required)
# ============================================================================

@app.get(
    "/fetch",
    response_model=FetchOut,
    dependencies=[Depends(require_worker_token)],
    responses={400: {"model": ErrorOut}},
)
async def fetch_default(
    request: Request,
    store: QueueStore = Depends(get_store),
    current: Settings = Depends(get_settings),
):
    """Pop one job from the default queue"""
    return await fetch_job_handler(request, store, current)


@app.get(
    "/fetch/{queue}",
    response_model=FetchOut,
    dependencies=[Depends(require_worker_token)],
    responses={400: {"model": ErrorOut}},
)
async def fetch_named(
    queue: str,
    request: Request,
    store: QueueStore = Depends(get_store),
    current: Settings = Depends(get_settings),
):
    """Pop one job from a named queue"""
    return await fetch_job_handler(request, store, current, queue=queue)


@app.get("/metrics", dependencies=[Depends(require_worker_token)])
async def metrics(store: QueueStore = Depends(get_store)):
    """In-process counters plus the last-seen time of every worker host"""
    return {
        "metrics": get_metrics_collector().get_metrics(),
        "workers": await LastSeenTracker(store).snapshot(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "gateway.transport.http_app:app",
        host="0.0.0.0",
        port=8080,
        reload=not settings.is_production,
        log_level=settings.log_level.lower(),
        access_log=not settings.is_production,  # Disable in prod (use middleware logging)
        server_header=False,
        date_header=False,
    )

# gateway/infra/redis_store.py
"""
Queue store adapter over Redis (redis.asyncio).

Only three atomic primitives are used: RPOP/LPUSH on lists and HSET on a
hash. Producers LPUSH at the head and the gateway RPOPs from the tail, so
every named queue is served first-in first-out.

Key layout (``<prefix>`` defaults to ``frigg``):

    <prefix>:queue              default job queue
    <prefix>:queue:<name>       named job queue
    <prefix>:webhooks           webhook envelopes
    <prefix>:worker:last_seen   host -> ISO timestamp
"""
from __future__ import annotations

from typing import Any, Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from gateway.core.errors import StoreUnavailableError
from gateway.infra.logging_config import get_logger
from gateway.infra.metrics import GatewayMetrics

logger = get_logger(__name__)

DEFAULT_PREFIX = "frigg"


class QueueKeys:
    """Key naming for one namespace."""

    def __init__(self, prefix: str = DEFAULT_PREFIX):
        self.prefix = prefix

    def queue(self, name: str | None = None) -> str:
        if not name:
            return f"{self.prefix}:queue"
        return f"{self.prefix}:queue:{name}"

    @property
    def webhooks(self) -> str:
        return f"{self.prefix}:webhooks"

    @property
    def last_seen(self) -> str:
        return f"{self.prefix}:worker:last_seen"


class QueueStore(Protocol):
    """Narrow contract the gateway needs from the external store."""

    async def pop_job(self, queue: str | None) -> str | None: ...

    async def push_job(self, queue: str | None, raw: str) -> int: ...

    async def push_webhook(self, raw: str) -> int: ...

    async def set_last_seen(self, host: str, seen_at: str) -> None: ...

    async def get_last_seen(self) -> dict[str, str]: ...

    async def ping(self) -> bool: ...


class RedisQueueStore:
    """QueueStore backed by a redis.asyncio client."""

    def __init__(self, client: aioredis.Redis, keys: QueueKeys | None = None):
        self.client = client
        self.keys = keys or QueueKeys()

    async def _call(self, operation: str, coro) -> Any:
        try:
            return await coro
        except (RedisError, OSError) as exc:
            GatewayMetrics.store_error(operation)
            logger.error(
                f"Store operation failed: {operation} ({exc.__class__.__name__})",
                exc_info=True,
            )
            raise StoreUnavailableError(operation, str(exc)) from exc

    async def pop_job(self, queue: str | None) -> str | None:
        return await self._call("pop_job", self.client.rpop(self.keys.queue(queue)))

    async def push_job(self, queue: str | None, raw: str) -> int:
        return await self._call("push_job", self.client.lpush(self.keys.queue(queue), raw))

    async def push_webhook(self, raw: str) -> int:
        return await self._call("push_webhook", self.client.lpush(self.keys.webhooks, raw))

    async def set_last_seen(self, host: str, seen_at: str) -> None:
        await self._call("set_last_seen", self.client.hset(self.keys.last_seen, host, seen_at))

    async def get_last_seen(self) -> dict[str, str]:
        return await self._call("get_last_seen", self.client.hgetall(self.keys.last_seen))

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except (RedisError, OSError):
            logger.warning("Store ping failed", exc_info=True)
            return False

    async def close(self) -> None:
        # The pool is owned by this store; close its sockets too
        await self.client.aclose(close_connection_pool=True)


def build_redis_client(
    redis_url: str,
    *,
    conn_timeout: float = 5.0,
    socket_timeout: float = 5.0,
    max_connections: int | None = None,
) -> aioredis.Redis:
    """Create a client whose replies are decoded to ``str`` and which owns its pool."""
    kwargs: dict[str, Any] = {
        "decode_responses": True,
        "socket_connect_timeout": conn_timeout,
        "socket_timeout": socket_timeout,
    }
    if max_connections is not None:
        kwargs["max_connections"] = max_connections

    pool = aioredis.ConnectionPool.from_url(redis_url, **kwargs)
    return aioredis.Redis.from_pool(pool)


# Global store, populated during app lifespan
_store: RedisQueueStore | None = None


async def init_store(
    redis_url: str,
    *,
    prefix: str = DEFAULT_PREFIX,
    conn_timeout: float = 5.0,
    socket_timeout: float = 5.0,
    max_connections: int | None = None,
) -> RedisQueueStore:
    """Create the store on startup. The connection is opened lazily by redis-py."""
    global _store

    if _store is not None:
        return _store

    logger.info(f"Initializing queue store: prefix={prefix}")
    client = build_redis_client(
        redis_url,
        conn_timeout=conn_timeout,
        socket_timeout=socket_timeout,
        max_connections=max_connections,
    )
    _store = RedisQueueStore(client, QueueKeys(prefix))
    return _store


async def close_store() -> None:
    """Close the store on shutdown"""
    global _store

    if _store is None:
        return

    logger.info("Closing queue store")
    await _store.close()
    _store = None

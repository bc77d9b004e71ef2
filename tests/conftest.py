# tests/conftest.py
"""Pytest configuration and fixtures"""
import pytest
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from gateway.config import Settings  # noqa: E402
from gateway.core.errors import StoreUnavailableError  # noqa: E402
from gateway.infra.metrics import get_metrics_collector  # noqa: E402
from gateway.infra.redis_store import QueueKeys  # noqa: E402


class FakeQueueStore:
    """
    In-memory QueueStore with the same list-end semantics as the Redis
    adapter: pushes go to the head, pops come from the tail.
    """

    def __init__(self, prefix: str = "frigg"):
        self.keys = QueueKeys(prefix)
        self.lists: dict[str, list[str]] = {}
        self.hashes: dict[str, dict[str, str]] = {}
        self.fail_operations: set[str] = set()
        self.pop_calls: list[str] = []
        self.reachable = True

    def _check(self, operation: str) -> None:
        if operation in self.fail_operations:
            raise StoreUnavailableError(operation, "simulated outage")

    def lpush(self, key: str, raw: str) -> int:
        items = self.lists.setdefault(key, [])
        items.insert(0, raw)
        return len(items)

    async def pop_job(self, queue):
        self._check("pop_job")
        key = self.keys.queue(queue)
        self.pop_calls.append(key)
        items = self.lists.get(key)
        if not items:
            return None
        return items.pop()

    async def push_job(self, queue, raw):
        self._check("push_job")
        return self.lpush(self.keys.queue(queue), raw)

    async def push_webhook(self, raw):
        self._check("push_webhook")
        return self.lpush(self.keys.webhooks, raw)

    async def set_last_seen(self, host, seen_at):
        self._check("set_last_seen")
        self.hashes.setdefault(self.keys.last_seen, {})[host] = seen_at

    async def get_last_seen(self):
        self._check("get_last_seen")
        return dict(self.hashes.get(self.keys.last_seen, {}))

    async def ping(self):
        return self.reachable

    # Helpers for assertions
    def webhook_items(self) -> list[str]:
        return list(self.lists.get(self.keys.webhooks, []))

    def last_seen(self) -> dict[str, str]:
        return dict(self.hashes.get(self.keys.last_seen, {}))


@pytest.fixture
def fake_store():
    """Empty in-memory queue store"""
    return FakeQueueStore()


@pytest.fixture
def worker_token():
    """Worker token accepted by the test settings"""
    return "token"


@pytest.fixture
def gateway_settings(worker_token):
    """Settings with a worker token and no version requirements"""
    return Settings(
        _env_file=None,
        frigg_worker_token=worker_token,
        frigg_worker_version=None,
        frigg_settings_version=None,
        frigg_coverage_version=None,
    )


@pytest.fixture
def client(fake_store, gateway_settings):
    """
    TestClient wired to the in-memory store.

    ``gateway_settings`` may be mutated by a test before a request is made;
    it is handed out fresh on every request through get_settings.
    """
    from fastapi.testclient import TestClient
    from gateway.config import get_settings
    from gateway.transport.http_app import app, get_store

    app.dependency_overrides[get_store] = lambda: fake_store
    app.dependency_overrides[get_settings] = lambda: gateway_settings
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_metrics():
    """Metrics are process-global; start every test from zero"""
    get_metrics_collector().reset()
    yield

from __future__ import annotations
import time
from typing import Dict, Any
from enum import Enum

from gateway.infra.logging_config import get_logger
from gateway.infra.redis_store import QueueStore

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class AsyncHealthCheck:
    """Base class for async health checks"""

    def __init__(self, name: str, critical: bool = True):
        self.name = name
        self.critical = critical

    async def check(self) -> Dict[str, Any]:
        """
        Perform health check.
        Returns dict with 'status', 'details', and optionally 'error'
        """
        raise NotImplementedError


class AsyncStoreHealthCheck(AsyncHealthCheck):
    """Check that the queue store answers PING in reasonable time"""

    def __init__(self, store: QueueStore, slow_threshold: float = 0.5):
        super().__init__("queue_store", critical=True)
        self.store = store
        self.slow_threshold = slow_threshold

    async def check(self) -> Dict[str, Any]:
        start = time.time()

        if not await self.store.ping():
            return {
                "status": HealthStatus.UNHEALTHY,
                "details": "Queue store unreachable",
            }

        duration = time.time() - start
        if duration > self.slow_threshold:
            return {
                "status": HealthStatus.DEGRADED,
                "details": f"Slow queue store response: {duration:.3f}s",
                "response_time": duration
            }

        return {
            "status": HealthStatus.HEALTHY,
            "details": "Queue store operational",
            "response_time": duration
        }


class AsyncHealthChecker:
    """Aggregate async health checks"""

    def __init__(self, checks: list[AsyncHealthCheck]):
        self.checks = checks

    async def run_checks(self, include_non_critical: bool = True) -> Dict[str, Any]:
        """
        Run all health checks.

        Returns:
            {
                "status": "healthy" | "degraded" | "unhealthy",
                "checks": {...},
                "timestamp": float
            }
        """
        results = {}
        overall_status = HealthStatus.HEALTHY

        for check in self.checks:
            if not include_non_critical and not check.critical:
                continue

            result = await check.check()
            results[check.name] = result

            if result["status"] == HealthStatus.UNHEALTHY and check.critical:
                overall_status = HealthStatus.UNHEALTHY
            elif result["status"] == HealthStatus.DEGRADED and overall_status == HealthStatus.HEALTHY:
                overall_status = HealthStatus.DEGRADED

        return {
            "status": overall_status.value,
            "checks": results,
            "timestamp": time.time()
        }


def get_async_health_checker(store: QueueStore) -> AsyncHealthChecker:
    """Health checker for the given store"""
    return AsyncHealthChecker([AsyncStoreHealthCheck(store)])

# tests/test_infrastructure.py
"""Tests for metrics, health checks and configuration."""
from unittest.mock import AsyncMock, patch

import pytest


class TestMetrics:
    def test_metrics_counter_increment(self):
        from gateway.infra.metrics import MetricsCollector

        collector = MetricsCollector()
        collector.inc_counter("test_counter")
        collector.inc_counter("test_counter")

        metrics = collector.get_metrics()
        assert metrics["counters"]["test_counter"] == 2

    def test_metrics_histogram_observe(self):
        from gateway.infra.metrics import MetricsCollector

        collector = MetricsCollector()
        for value in (0.1, 0.2, 0.3):
            collector.observe_histogram("test_histogram", value)

        stats = collector.get_metrics()["histograms"]["test_histogram"]
        assert stats["count"] == 3
        assert stats["min"] == 0.1
        assert stats["max"] == 0.3

    def test_metrics_with_labels(self):
        from gateway.infra.metrics import MetricsCollector

        collector = MetricsCollector()
        collector.inc_counter("jobs_fetched_total", labels={"queue": "default"})
        collector.inc_counter("jobs_fetched_total", labels={"queue": "custom"})

        counters = collector.get_metrics()["counters"]
        assert counters["jobs_fetched_total{queue=default}"] == 1
        assert counters["jobs_fetched_total{queue=custom}"] == 1

    def test_fetch_timer_records_histogram(self):
        from gateway.infra.metrics import GatewayMetrics, get_metrics_collector

        with GatewayMetrics.track_fetch_time("default"):
            pass

        histograms = get_metrics_collector().get_metrics()["histograms"]
        assert histograms["fetch_processing_seconds{queue=default}"]["count"] == 1

    def test_histogram_keeps_bounded_window(self):
        from gateway.infra.metrics import MetricsCollector

        collector = MetricsCollector(histogram_window=50)
        for i in range(300):
            collector.observe_histogram("fetch_processing_seconds", float(i))

        stats = collector.get_metrics()["histograms"]["fetch_processing_seconds"]
        assert stats["count"] == 300
        assert stats["window"] == 50
        assert stats["min"] == 250.0
        assert stats["sum"] == sum(range(300))

    def test_default_window_bounds_fetch_samples(self):
        from gateway.infra.metrics import HISTOGRAM_WINDOW, GatewayMetrics, get_metrics_collector

        for _ in range(HISTOGRAM_WINDOW + 10):
            with GatewayMetrics.track_fetch_time("default"):
                pass

        stats = get_metrics_collector().get_metrics()["histograms"]["fetch_processing_seconds{queue=default}"]
        assert stats["window"] == HISTOGRAM_WINDOW
        assert stats["count"] == HISTOGRAM_WINDOW + 10

    def test_webhook_service_label_folds_unknown(self):
        from gateway.infra.metrics import webhook_service_label

        assert webhook_service_label("github") == "github"
        assert webhook_service_label("GitLab") == "gitlab"
        assert webhook_service_label("s123") == "other"

    def test_outdated_counter_per_requirement(self):
        from gateway.infra.metrics import GatewayMetrics, get_metrics_collector

        GatewayMetrics.worker_outdated("coverage")
        counters = get_metrics_collector().get_metrics()["counters"]
        assert counters["worker_outdated_total{requirement=coverage}"] == 1


class TestHealthChecks:
    @pytest.mark.asyncio
    async def test_healthy_store(self, fake_store):
        from gateway.infra.health_checks_async import get_async_health_checker

        result = await get_async_health_checker(fake_store).run_checks()
        assert result["status"] == "healthy"
        assert result["checks"]["queue_store"]["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_unreachable_store(self, fake_store):
        from gateway.infra.health_checks_async import get_async_health_checker

        fake_store.reachable = False
        result = await get_async_health_checker(fake_store).run_checks()
        assert result["status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_slow_store_is_degraded(self, fake_store):
        from gateway.infra.health_checks_async import AsyncHealthChecker, AsyncStoreHealthCheck

        check = AsyncStoreHealthCheck(fake_store, slow_threshold=0.5)
        ticks = iter([0.0])
        with patch("gateway.infra.health_checks_async.time.time", side_effect=lambda: next(ticks, 2.0)):
            result = await AsyncHealthChecker([check]).run_checks()

        assert result["status"] == "degraded"

    @pytest.mark.asyncio
    async def test_ping_called(self):
        from gateway.infra.health_checks_async import AsyncStoreHealthCheck

        store = AsyncMock()
        store.ping.return_value = True
        await AsyncStoreHealthCheck(store).check()
        store.ping.assert_awaited_once()


class TestSettings:
    def test_defaults(self):
        from gateway.config import Settings

        s = Settings(_env_file=None)
        assert s.key_prefix == "frigg"
        assert s.docs_url == "https://frigg.io"
        assert s.app_env == "dev"

    def test_env_overrides(self, monkeypatch):
        from gateway.config import Settings

        monkeypatch.setenv("FRIGG_WORKER_TOKEN", "from-env")
        monkeypatch.setenv("FRIGG_WORKER_VERSION", ">=2.0.0")
        s = Settings(_env_file=None)
        assert s.frigg_worker_token == "from-env"
        assert s.compatibility_requirements().worker == ">=2.0.0"

    def test_get_settings_rereads_environment(self, monkeypatch):
        from gateway.config import get_settings

        monkeypatch.setenv("FRIGG_WORKER_TOKEN", "first")
        assert get_settings().frigg_worker_token == "first"
        monkeypatch.setenv("FRIGG_WORKER_TOKEN", "second")
        assert get_settings().frigg_worker_token == "second"

    def test_invalid_app_env_rejected(self):
        from gateway.config import Settings
        from pydantic import ValidationError

        with pytest.raises(ValidationError):
            Settings(_env_file=None, app_env="qa")

    def test_production_requires_token(self):
        from gateway.config import Settings

        s = Settings(_env_file=None, app_env="prod", frigg_worker_token=None)
        assert "frigg_worker_token" in s.validate_required_for_production()

    def test_dev_requires_nothing(self):
        from gateway.config import Settings

        assert Settings(_env_file=None, app_env="dev").validate_required_for_production() == []

    def test_risky_config_warnings(self):
        from gateway.config import Settings, warn_on_risky_config

        s = Settings(
            _env_file=None,
            app_env="prod",
            frigg_worker_token=None,
            redis_url="redis://localhost:6379/0",
            log_level="DEBUG",
        )
        warnings = warn_on_risky_config(s)
        assert len(warnings) == 3

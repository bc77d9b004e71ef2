# tests/test_security.py
"""Tests for gateway/transport/security.py — token checks and headers."""
from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from gateway.core.errors import AuthRejectedError


# ============================================================================
# Token validation
# ============================================================================

class TestTokenValidation:
    def test_strong_token_no_warnings(self):
        from gateway.transport.security import validate_token_strength
        token = "aB3cD5eF7gH9iJ1kL3mN5oP7qR9sT1uX"  # 32 chars
        assert validate_token_strength(token, "FRIGG_WORKER_TOKEN") == []

    def test_short_token_warning(self):
        from gateway.transport.security import validate_token_strength
        warnings = validate_token_strength("shortAa1", "FRIGG_WORKER_TOKEN")
        assert any("too short" in w for w in warnings)

    def test_weak_pattern_warning(self):
        from gateway.transport.security import validate_token_strength
        token = "A1" * 20 + "frigg"
        warnings = validate_token_strength(token, "FRIGG_WORKER_TOKEN")
        assert any("weak pattern" in w for w in warnings)

    def test_low_diversity_warning(self):
        from gateway.transport.security import validate_token_strength
        warnings = validate_token_strength("a" * 40, "FRIGG_WORKER_TOKEN")
        assert any("diversity" in w for w in warnings)


class TestCheckConfiguredTokens:
    @patch("gateway.transport.security.logger")
    @patch("gateway.transport.security.startup_settings")
    def test_missing_token_warns(self, mock_settings, mock_logger):
        mock_settings.frigg_worker_token = None
        from gateway.transport.security import check_configured_tokens
        check_configured_tokens()
        assert "not set" in mock_logger.warning.call_args.args[0]

    @patch("gateway.transport.security.logger")
    @patch("gateway.transport.security.startup_settings")
    def test_strong_token_silent(self, mock_settings, mock_logger):
        mock_settings.frigg_worker_token = "aB3cD5eF7gH9iJ1kL3mN5oP7qR9sT1uX"
        from gateway.transport.security import check_configured_tokens
        check_configured_tokens()
        mock_logger.warning.assert_not_called()


# ============================================================================
# Token comparison
# ============================================================================

class TestVerifyWorkerToken:
    def test_match(self):
        from gateway.transport.security import verify_worker_token
        assert verify_worker_token("token", "token") is True

    def test_mismatch(self):
        from gateway.transport.security import verify_worker_token
        assert verify_worker_token("token", "tokem") is False

    @pytest.mark.parametrize("presented,expected", [
        (None, "token"),
        ("", "token"),
        ("token", None),
        ("", ""),
        (None, None),
    ])
    def test_empty_never_matches(self, presented, expected):
        from gateway.transport.security import verify_worker_token
        assert verify_worker_token(presented, expected) is False


class TestRequireWorkerToken:
    @pytest.mark.asyncio
    async def test_accepts_matching_header(self, gateway_settings):
        from gateway.transport.security import require_worker_token
        request = MagicMock()
        request.headers = {"x-frigg-worker-token": "token"}
        assert await require_worker_token(request, gateway_settings) is None

    @pytest.mark.asyncio
    async def test_rejects_and_counts(self, gateway_settings):
        from gateway.infra.metrics import get_metrics_collector
        from gateway.transport.security import require_worker_token
        request = MagicMock()
        request.headers = {}

        with pytest.raises(AuthRejectedError):
            await require_worker_token(request, gateway_settings)

        assert get_metrics_collector().get_metrics()["counters"]["auth_rejected_total"] == 1


# ============================================================================
# Security headers
# ============================================================================

class TestSecurityHeaders:
    @patch("gateway.transport.security.startup_settings")
    def test_owasp_headers_present(self, mock_settings):
        mock_settings.is_production = False
        mock_settings.is_staging = False
        from gateway.transport.security import SecurityHeaders
        response = MagicMock()
        response.headers = {}
        SecurityHeaders.add_security_headers(response)
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert "Content-Security-Policy" in response.headers
        assert "no-store" in response.headers["Cache-Control"]

    @patch("gateway.transport.security.startup_settings")
    def test_existing_cache_control_kept(self, mock_settings):
        mock_settings.is_production = False
        mock_settings.is_staging = False
        from gateway.transport.security import SecurityHeaders
        response = MagicMock()
        response.headers = {"Cache-Control": "max-age=60"}
        SecurityHeaders.add_security_headers(response)
        assert response.headers["Cache-Control"] == "max-age=60"

    @patch("gateway.transport.security.startup_settings")
    def test_hsts_in_production(self, mock_settings):
        mock_settings.is_production = True
        mock_settings.is_staging = False
        from gateway.transport.security import SecurityHeaders
        response = MagicMock()
        response.headers = {}
        SecurityHeaders.add_security_headers(response)
        assert "Strict-Transport-Security" in response.headers

    @patch("gateway.transport.security.startup_settings")
    def test_no_hsts_in_dev(self, mock_settings):
        mock_settings.is_production = False
        mock_settings.is_staging = False
        from gateway.transport.security import SecurityHeaders
        response = MagicMock()
        response.headers = {}
        SecurityHeaders.add_security_headers(response)
        assert "Strict-Transport-Security" not in response.headers


# ============================================================================
# Header sanitization
# ============================================================================

class TestSanitizeHeaders:
    def test_worker_token_redacted(self):
        from gateway.transport.security import sanitize_headers_for_logging
        result = sanitize_headers_for_logging({"X-Frigg-Worker-Token": "secret"})
        assert result["X-Frigg-Worker-Token"] == "***REDACTED***"

    def test_authorization_redacted(self):
        from gateway.transport.security import sanitize_headers_for_logging
        result = sanitize_headers_for_logging({"Authorization": "Bearer x"})
        assert result["Authorization"] == "***REDACTED***"

    def test_normal_headers_preserved(self):
        from gateway.transport.security import sanitize_headers_for_logging
        headers = {"X-Frigg-Worker-Host": "ron", "X-GitHub-Event": "push"}
        assert sanitize_headers_for_logging(headers) == headers

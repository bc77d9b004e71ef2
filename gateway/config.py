# gateway/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal

from gateway.core.compat import CompatibilityRequirements


def _requirement(value: str | None) -> str | None:
    # Blank or whitespace-only means "no requirement"
    if value is None or not value.strip():
        return None
    return value.strip()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_env: Literal["dev", "staging", "prod"] = "dev"
    log_level: str = "INFO"
    docs_url: str = "https://frigg.io"  # Target of the root redirect

    # Queue store (Redis)
    redis_url: str = "redis://localhost:6379/0"
    redis_conn_timeout: float = 5.0
    redis_socket_timeout: float = 5.0
    redis_max_connections: int | None = None
    key_prefix: str = "frigg"  # Namespace for every queue/hash key

    # Worker admission
    # These are re-read on every request (see get_settings), so rotating the
    # token or bumping a requirement does not need a restart.
    frigg_worker_token: str | None = None
    frigg_worker_version: str | None = None    # e.g. ">=1.4.0" or "1.4.0" (minimum)
    frigg_settings_version: str | None = None
    frigg_coverage_version: str | None = None

    # Feature Flags
    enable_request_logging: bool = True

    @property
    def is_production(self) -> bool:
        return self.app_env == "prod"

    @property
    def is_staging(self) -> bool:
        return self.app_env == "staging"

    def compatibility_requirements(self) -> CompatibilityRequirements:
        """Snapshot of the three version requirements for one gate evaluation"""
        return CompatibilityRequirements(
            worker=_requirement(self.frigg_worker_version),
            settings=_requirement(self.frigg_settings_version),
            coverage=_requirement(self.frigg_coverage_version),
        )

    def validate_required_for_production(self) -> list[str]:
        """Validate that required settings exist for production"""
        if not self.is_production:
            return []

        missing = []
        if not self.frigg_worker_token:
            missing.append("frigg_worker_token")
        if not self.redis_url:
            missing.append("redis_url")
        return missing


def warn_on_risky_config(s: "Settings") -> list[str]:
    warnings: list[str] = []

    if not s.frigg_worker_token:
        warnings.append("frigg_worker_token is not set (every /fetch request will be rejected).")

    if s.is_production and s.redis_url.startswith("redis://localhost"):
        warnings.append("prod: redis_url points at localhost.")

    if s.is_production and s.log_level.upper() == "DEBUG":
        warnings.append("prod: log_level=DEBUG (queued payloads may end up in logs).")

    return warnings


def get_settings() -> Settings:
    """
    Load a fresh Settings snapshot.

    Used as a FastAPI dependency: every request sees the current environment
    instead of a value captured at import time.
    """
    return Settings()


settings = Settings()

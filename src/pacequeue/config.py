"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with PACEQUEUE_ prefix.
Everything is read once at startup; the dispatcher interval is never
changed at runtime.
"""

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All app configuration. Set via PACEQUEUE_* env vars."""

    # Pacing
    min_interval_ms: int = 5000  # minimum spacing between upstream calls
    call_timeout_seconds: Optional[float] = 60.0  # hard cap per dispatch
    cancel_on_clear: bool = False  # settle cleared items as "cancelled"

    # Upstream provider
    upstream: str = "smsgen"  # registered client name
    upstream_base_url: str = "https://smsgen.net/api"
    upstream_timeout_seconds: float = 30.0

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3099

    # CORS
    cors_origins: list[str] = ["*"]

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {"env_prefix": "PACEQUEUE_"}

    @model_validator(mode="after")
    def validate_timing(self):
        """Reject intervals and timeouts that would break pacing."""
        if self.min_interval_ms < 0:
            raise ValueError("PACEQUEUE_MIN_INTERVAL_MS must be >= 0")
        if self.upstream_timeout_seconds <= 0:
            raise ValueError("PACEQUEUE_UPSTREAM_TIMEOUT_SECONDS must be > 0")
        if self.call_timeout_seconds is not None and self.call_timeout_seconds <= 0:
            raise ValueError("PACEQUEUE_CALL_TIMEOUT_SECONDS must be > 0")
        return self


# Singleton, import this everywhere
settings = Settings()

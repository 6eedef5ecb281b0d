"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with PLAYGROUND_ prefix.
No config files — just env vars (12-factor app style).
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All app configuration. Set via PLAYGROUND_* env vars."""

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS
    cors_origins: list[str] = [
        "http://localhost:8080",
    ]

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Producers
    default_producer: str = "compound_growth"

    # Relay
    channel_maxsize: int = 0  # 0 = unbounded
    handshake_timeout_seconds: float = 30.0
    session_ttl_seconds: float = 300.0  # never-attached sessions
    sweep_interval_seconds: float = 30.0

    model_config = {"env_prefix": "PLAYGROUND_"}

    @model_validator(mode="after")
    def validate_relay_settings(self):
        """Timeouts must be positive; a zero TTL would expire sessions before the page loads."""
        for name in (
            "handshake_timeout_seconds",
            "session_ttl_seconds",
            "sweep_interval_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"PLAYGROUND_{name.upper()} must be positive")
        if self.channel_maxsize < 0:
            raise ValueError("PLAYGROUND_CHANNEL_MAXSIZE must be >= 0")
        return self


# Singleton — import this everywhere
settings = Settings()

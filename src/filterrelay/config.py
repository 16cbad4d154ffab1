"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with FILTERRELAY_ prefix.
No config files, only env vars (12-factor app style).
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    """All relay configuration. Set via FILTERRELAY_* env vars."""

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000

    # CORS
    cors_origins: list[str] = ["*"]

    # Scopes ("services"): one WebSocket path segment per scope
    partitioned: bool = True
    scope_key: str = "service"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {"env_prefix": "FILTERRELAY_"}

    @model_validator(mode="after")
    def validate_relay_settings(self):
        """Reject settings the registry and logging setup cannot work with."""
        if not self.scope_key:
            raise ValueError("FILTERRELAY_SCOPE_KEY must not be empty")
        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"FILTERRELAY_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}"
            )
        return self


# Singleton: default wiring for `uvicorn filterrelay.main:app`
settings = Settings()

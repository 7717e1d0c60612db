"""Client settings, read from the process environment."""

import os
from typing import Mapping, Optional, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.core.exceptions import ConfigurationError

DEFAULT_SERVER_URL = "ws://localhost:8080/ws"

# environment variable -> settings field
ENV_VARIABLES: dict[str, str] = {
    "REVERSI_SERVER_URL": "server_url",
    "REVERSI_HEARTBEAT_INTERVAL": "heartbeat_interval",
    "REVERSI_CONNECT_TIMEOUT": "connect_timeout",
    "REVERSI_RECONNECT": "reconnect",
    "REVERSI_RECONNECT_MAX_ATTEMPTS": "reconnect_max_attempts",
    "REVERSI_RECONNECT_INITIAL_DELAY": "reconnect_initial_delay",
    "REVERSI_RECONNECT_MAX_DELAY": "reconnect_max_delay",
    "REVERSI_LOG_LEVEL": "log_level",
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ClientSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    server_url: str = DEFAULT_SERVER_URL
    heartbeat_interval: float = Field(default=5.0, gt=0)
    connect_timeout: float = Field(default=10.0, gt=0)
    reconnect: bool = True
    # 0 means: keep trying
    reconnect_max_attempts: int = Field(default=0, ge=0)
    reconnect_initial_delay: float = Field(default=1.0, gt=0)
    reconnect_max_delay: float = Field(default=30.0, gt=0)
    log_level: str = "INFO"

    @field_validator("server_url")
    @classmethod
    def validate_server_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("ws://", "wss://")):
            raise ValueError(
                f"Server URL must use the ws:// or wss:// scheme, got {value!r}."
            )
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level {value!r}. Pick one from {', '.join(LOG_LEVELS)}.")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Self:
        """Build settings from environment variables. Unset variables keep their defaults."""
        environ = os.environ if environ is None else environ
        values = {
            field_name: environ[variable]
            for variable, field_name in ENV_VARIABLES.items()
            if variable in environ
        }
        return cls.build(**values)

    @classmethod
    def build(cls, **values: object) -> Self:
        """Validate the given values, converting pydantic's error into our own exception type."""
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid client settings: {exc}") from exc

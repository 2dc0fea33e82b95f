"""
Process configuration.

Where the database and the settings document live, how often each loop
fires, and the log level. Values come from environment variables and may be
overridden on the command line. Domain configuration (monitored paths,
extensions, cleanup rules, failure remark) is not here; it is read from the
settings document every cycle.
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

ENV_DB_PATH = "STATUSWATCH_DB"
ENV_SETTINGS_PATH = "STATUSWATCH_SETTINGS"
ENV_POLL_SECONDS = "STATUSWATCH_POLL_SECONDS"
ENV_CLEANUP_SECONDS = "STATUSWATCH_CLEANUP_SECONDS"
ENV_LOG_LEVEL = "STATUSWATCH_LOG_LEVEL"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class WatcherConfig(BaseModel):
    """Validated process configuration."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    db_path: str = "./statuswatch.db"
    settings_path: str = "./statuswatch.settings.json"
    poll_seconds: float = Field(5.0, gt=0)
    cleanup_seconds: float = Field(60.0, gt=0)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "WatcherConfig":
        """
        Build configuration from environment variables.

        Args:
            environ: Environment mapping (defaults to os.environ)
            **overrides: Explicit values (e.g. from CLI flags); None is ignored

        Raises:
            pydantic.ValidationError: If a value is invalid
        """
        environ = os.environ if environ is None else environ
        values = {}
        for key, env_name in (
            ("db_path", ENV_DB_PATH),
            ("settings_path", ENV_SETTINGS_PATH),
            ("poll_seconds", ENV_POLL_SECONDS),
            ("cleanup_seconds", ENV_CLEANUP_SECONDS),
            ("log_level", ENV_LOG_LEVEL),
        ):
            if environ.get(env_name):
                values[key] = environ[env_name]

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)

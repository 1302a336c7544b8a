"""Application settings powered by Pydantic BaseSettings."""

import logging
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Centralized environment configuration.

    Every field can be overridden with a ``RISKBOARD_`` prefixed environment
    variable, e.g. ``RISKBOARD_RISK_BASE_URL``.
    """

    model_config = SettingsConfigDict(
        env_prefix="RISKBOARD_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    redis_url: str | None = Field(
        default=None,
        description="Redis URL for the ranked set; unset uses the in-memory store",
    )
    ranked_set_key: Annotated[str, Field(min_length=1)] = "top:risky:accounts"
    top_k: Annotated[int, Field(ge=0, le=100)] = 5

    risk_base_url: str = "http://localhost:8081"
    trading_base_url: str = "http://localhost:8082"
    ledger_base_url: str = "http://localhost:8083"

    timeout_seconds: Annotated[float, Field(gt=0.0, le=60.0)] = 5.0
    max_retries: Annotated[int, Field(ge=0, le=10)] = 2
    base_delay_ms: Annotated[int, Field(ge=0, le=60000)] = 100

    log_level: str = "INFO"
    log_json: bool = True

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure the log level is one the logging module knows."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            msg = f"Unknown log level: {v}"
            raise ValueError(msg)
        return level

    @property
    def log_level_value(self) -> int:
        """Numeric logging level."""
        level: int = logging.getLevelName(self.log_level)
        return level

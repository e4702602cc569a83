"""Readiness polling budgets."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReadinessSettings(BaseSettings):
    """Two-phase polling intervals and deadlines for unit readiness."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    initial_timeout_seconds: float = Field(default=30.0, alias="READINESS_INITIAL_TIMEOUT_SECONDS", gt=0)
    max_timeout_seconds: float = Field(default=120.0, alias="READINESS_MAX_TIMEOUT_SECONDS", gt=0)
    fast_interval_seconds: float = Field(default=0.5, alias="READINESS_FAST_INTERVAL_SECONDS", gt=0)
    slow_interval_seconds: float = Field(default=1.0, alias="READINESS_SLOW_INTERVAL_SECONDS", gt=0)


__all__ = ["ReadinessSettings"]

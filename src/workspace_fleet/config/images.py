"""Runtime image references used when creating units."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RuntimeImageSettings(BaseSettings):
    """Lightweight and universal image references plus an optional global override."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    lightweight: str = Field(
        default="registry.fly.io/workspaces:node20-production",
        alias="WORKSPACE_IMAGE_LIGHTWEIGHT",
    )
    universal: str = Field(
        default="registry.fly.io/workspaces:universal",
        alias="WORKSPACE_IMAGE_UNIVERSAL",
    )
    override: str | None = Field(default=None, alias="WORKSPACE_IMAGE_OVERRIDE")


__all__ = ["RuntimeImageSettings"]

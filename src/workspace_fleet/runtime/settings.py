"""Configuration aggregate for workspace fleet runtime wiring."""

from __future__ import annotations

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from workspace_fleet.config.control_plane import ControlPlaneSettings
from workspace_fleet.config.gateway import GatewaySettings
from workspace_fleet.config.images import RuntimeImageSettings
from workspace_fleet.config.observability import ObservabilitySettings
from workspace_fleet.config.readiness import ReadinessSettings


class Settings(BaseSettings):
    """Runtime configuration resolved from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    control_plane: ControlPlaneSettings = Field(default_factory=ControlPlaneSettings)
    images: RuntimeImageSettings = Field(default_factory=RuntimeImageSettings)
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    readiness: ReadinessSettings = Field(default_factory=ReadinessSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @property
    def control_plane_token_value(self) -> str:
        return self.control_plane.api_token_value

    @property
    def gateway_admin_token_value(self) -> str:
        return self.gateway.admin_token_value

    @classmethod
    def load(cls) -> Settings:
        instance = cls()
        logger = logging.getLogger("workspace_fleet.settings")
        logger.info("workspace fleet settings loaded: %r", instance)
        return instance


__all__ = ["Settings"]

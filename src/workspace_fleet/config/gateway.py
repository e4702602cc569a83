"""Gateway-path settings: workspace lookup, identity issuance and exec forwarding."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from workspace_fleet.clients import GATEWAY

GatewayWorkdirMode = Literal["field", "shell_prefix"]


class GatewaySettings(BaseSettings):
    """Endpoints and credentials for the gateway-mediated execution path."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    api_url: str = Field(default=GATEWAY.api_url, alias="GATEWAY_API_URL")
    admin_token: SecretStr = Field(default_factory=lambda: SecretStr(""), alias="GATEWAY_ADMIN_TOKEN")
    exec_url: str = Field(default=GATEWAY.exec_url, alias="AGENT_GATEWAY_URL")
    workdir_mode: GatewayWorkdirMode = Field(default="field", alias="GATEWAY_WORKDIR_MODE")
    token_cache_ttl_seconds: float = Field(
        default=300.0,
        alias="SESSION_TOKEN_CACHE_TTL_SECONDS",
        gt=0,
        description="How long an issued session token is reused before re-issuing.",
    )
    token_lifetime_seconds: int = Field(
        default=24 * 60 * 60,
        alias="SESSION_TOKEN_LIFETIME_SECONDS",
        gt=0,
        description="Validity requested from the identity issuer for each session token.",
    )

    @property
    def admin_token_value(self) -> str:
        return self.admin_token.get_secret_value()


__all__ = ["GatewaySettings", "GatewayWorkdirMode"]

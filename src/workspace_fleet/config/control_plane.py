"""Machine-control API connectivity and machine defaults."""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from workspace_fleet.clients import CONTROL_PLANE


class ControlPlaneSettings(BaseSettings):
    """Endpoints, credentials and guest sizing for the machine-control API."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    api_url: str = Field(default=CONTROL_PLANE.base_url, alias="FLY_API_URL")
    graphql_url: str = Field(default=CONTROL_PLANE.graphql_url, alias="FLY_GRAPHQL_URL")
    api_token: SecretStr = Field(default_factory=lambda: SecretStr(""), alias="FLY_API_TOKEN")
    app_name: str = Field(default="workspaces", alias="FLY_APP_NAME")
    org_slug: str = Field(default="personal", alias="FLY_ORG_SLUG")
    region: str = Field(default="fra", alias="FLY_REGION")
    public_endpoint_template: str = Field(
        default="https://{app}.fly.dev",
        alias="WORKSPACE_PUBLIC_ENDPOINT_TEMPLATE",
    )
    agent_port: int = Field(default=13338, alias="WORKSPACE_AGENT_PORT", ge=1, le=65535)
    guest_cpus: int = Field(default=2, alias="WORKSPACE_GUEST_CPUS", ge=1)
    guest_cpu_kind: str = Field(default="shared", alias="WORKSPACE_GUEST_CPU_KIND")
    guest_memory_mb: int = Field(default=2048, alias="WORKSPACE_GUEST_MEMORY_MB", ge=256)
    timeout_seconds: float = Field(
        default=CONTROL_PLANE.timeout_seconds,
        alias="CONTROL_PLANE_TIMEOUT_SECONDS",
        gt=0,
    )
    resume_settle_seconds: float = Field(default=2.0, alias="APP_RESUME_SETTLE_SECONDS", ge=0)

    @property
    def api_token_value(self) -> str:
        return self.api_token.get_secret_value()

    def public_endpoint(self, app: str | None = None) -> str:
        return self.public_endpoint_template.format(app=app or self.app_name)


__all__ = ["ControlPlaneSettings"]

"""Port describing the transports that carry commands into units."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class DirectExecTransport(Protocol):
    """Posts commands straight to a unit's in-sandbox agent."""

    async def post_exec(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        *,
        headers: Mapping[str, str],
        timeout_seconds: float,
    ) -> Mapping[str, Any]:
        """Send ``payload`` to ``{endpoint}/exec`` and return the decoded body."""

    async def get_health(
        self,
        endpoint: str,
        *,
        headers: Mapping[str, str],
        timeout_seconds: float,
    ) -> bool:
        """Return ``True`` when the agent behind ``endpoint`` answers its health probe."""


class GatewayPort(Protocol):
    """Resolves workspace names and forwards commands through the exec gateway."""

    async def resolve_workspace_id(self, workspace_name: str, *, owner_name: str | None = None) -> str:
        """Return the internal identifier of the named workspace."""

    async def forward_exec(
        self,
        workspace_id: str,
        payload: Mapping[str, Any],
        *,
        session_token: str,
        timeout_seconds: float,
    ) -> Mapping[str, Any]:
        """Forward ``payload`` to the gateway and return the decoded body."""


__all__ = ["DirectExecTransport", "GatewayPort"]

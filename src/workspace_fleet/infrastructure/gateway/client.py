"""Workspace lookup and exec forwarding through the agent gateway."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from workspace_fleet.application.ports.exec_transport import GatewayPort
from workspace_fleet.clients import GATEWAY
from workspace_fleet.errors import ExecTransportError, WorkspaceLookupError
from workspace_fleet.infrastructure.gateway._http import error_message, json_object

logger = logging.getLogger(__name__)

SESSION_TOKEN_HEADER = "Coder-Session-Token"


class HttpGatewayClient(GatewayPort):
    """Resolves workspaces with the admin token and forwards commands with a user token."""

    def __init__(
        self,
        *,
        api_url: str,
        exec_url: str,
        admin_token: str,
        lookup_timeout_seconds: float = GATEWAY.lookup_timeout_seconds,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_url or not exec_url:
            raise ValueError("gateway api_url and exec_url must not be empty")
        if not admin_token:
            logger.warning("gateway admin token is not configured; workspace lookups will be rejected")
        self._api_url = api_url.rstrip("/")
        self._exec_url = exec_url.rstrip("/")
        self._admin_token = admin_token
        self._lookup_timeout = lookup_timeout_seconds
        self._owns_client = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(transport=transport)

    async def resolve_workspace_id(self, workspace_name: str, *, owner_name: str | None = None) -> str:
        if not workspace_name:
            raise WorkspaceLookupError("workspace name must not be empty")
        query = f"name:{workspace_name}"
        if owner_name:
            query = f"owner:{owner_name} {query}"
        url = f"{self._api_url}/api/v2/workspaces"
        try:
            response = await self._client.get(
                url,
                params={"q": query},
                headers={SESSION_TOKEN_HEADER: self._admin_token},
                timeout=self._lookup_timeout,
            )
        except httpx.HTTPError as exc:
            raise WorkspaceLookupError(f"workspace lookup failed: {str(exc) or type(exc).__name__}") from exc
        if response.status_code >= 400:
            raise WorkspaceLookupError(
                f"workspace lookup returned {response.status_code}: {error_message(response)}"
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise WorkspaceLookupError("workspace lookup returned invalid JSON") from exc

        workspaces = body.get("workspaces") if isinstance(body, Mapping) else None
        match = _pick_workspace(workspaces or [], workspace_name, owner_name)
        if match is None:
            raise WorkspaceLookupError(f"Workspace {workspace_name} not found")
        return str(match["id"])

    async def forward_exec(
        self,
        workspace_id: str,
        payload: Mapping[str, Any],
        *,
        session_token: str,
        timeout_seconds: float,
    ) -> Mapping[str, Any]:
        url = f"{self._exec_url}/exec/{workspace_id}"
        try:
            response = await self._client.post(
                url,
                json=dict(payload),
                headers={SESSION_TOKEN_HEADER: session_token},
                timeout=timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise ExecTransportError(f"POST {url} failed: {str(exc) or type(exc).__name__}") from exc
        return json_object(response, source="gateway")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _pick_workspace(
    workspaces: Any,
    workspace_name: str,
    owner_name: str | None,
) -> Mapping[str, Any] | None:
    candidates = [item for item in workspaces if isinstance(item, Mapping) and item.get("id")]
    for item in candidates:
        if item.get("name") != workspace_name:
            continue
        if owner_name and item.get("owner_name") not in (None, owner_name):
            continue
        return item
    # The search endpoint matches names by prefix; fall back to its first hit.
    return candidates[0] if candidates else None


__all__ = ["SESSION_TOKEN_HEADER", "HttpGatewayClient"]

"""Direct HTTP transport to the agent running inside a unit."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from workspace_fleet.application.ports.exec_transport import DirectExecTransport
from workspace_fleet.errors import ExecTransportError
from workspace_fleet.infrastructure.gateway._http import json_object

logger = logging.getLogger(__name__)


class HttpDirectExecTransport(DirectExecTransport):
    """Posts to ``{endpoint}/exec`` and probes ``{endpoint}/health``."""

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(transport=transport)

    async def post_exec(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        *,
        headers: Mapping[str, str],
        timeout_seconds: float,
    ) -> Mapping[str, Any]:
        url = f"{endpoint.rstrip('/')}/exec"
        try:
            response = await self._client.post(
                url,
                json=dict(payload),
                headers=dict(headers),
                timeout=timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise ExecTransportError(f"POST {url} failed: {str(exc) or type(exc).__name__}") from exc
        return json_object(response, source="agent")

    async def get_health(
        self,
        endpoint: str,
        *,
        headers: Mapping[str, str],
        timeout_seconds: float,
    ) -> bool:
        url = f"{endpoint.rstrip('/')}/health"
        try:
            response = await self._client.get(url, headers=dict(headers), timeout=timeout_seconds)
        except httpx.HTTPError as exc:
            raise ExecTransportError(f"GET {url} failed: {str(exc) or type(exc).__name__}") from exc
        if response.status_code != httpx.codes.OK:
            logger.debug("agent health probe not ok", extra={"data": {"url": url, "status_code": response.status_code}})
            return False
        return True

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["HttpDirectExecTransport"]

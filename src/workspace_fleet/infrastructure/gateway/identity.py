"""Mint per-user session tokens through the gateway's user API."""

from __future__ import annotations

import httpx

from workspace_fleet.application.ports.identity import IdentityIssuerPort
from workspace_fleet.clients import GATEWAY
from workspace_fleet.errors import IdentityIssuanceError
from workspace_fleet.infrastructure.gateway._http import error_message
from workspace_fleet.infrastructure.gateway.client import SESSION_TOKEN_HEADER

_NANOSECONDS = 1_000_000_000


class HttpIdentityIssuer(IdentityIssuerPort):
    def __init__(
        self,
        *,
        api_url: str,
        admin_token: str,
        timeout_seconds: float = GATEWAY.lookup_timeout_seconds,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_url:
            raise ValueError("identity issuer api_url must not be empty")
        self._api_url = api_url.rstrip("/")
        self._admin_token = admin_token
        self._timeout = timeout_seconds
        self._owns_client = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(transport=transport)

    async def issue_token(self, identity: str, *, lifetime_seconds: int) -> str:
        url = f"{self._api_url}/api/v2/users/{identity}/keys/tokens"
        try:
            response = await self._client.post(
                url,
                # lifetime is a Go duration (nanoseconds)
                json={"lifetime": lifetime_seconds * _NANOSECONDS},
                headers={SESSION_TOKEN_HEADER: self._admin_token},
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise IdentityIssuanceError(f"token issuance failed: {str(exc) or type(exc).__name__}") from exc
        if response.status_code >= 400:
            raise IdentityIssuanceError(
                f"token issuance returned {response.status_code}: {error_message(response)}"
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise IdentityIssuanceError("token issuance returned invalid JSON") from exc
        key = body.get("key") if isinstance(body, dict) else None
        if not key:
            raise IdentityIssuanceError("token issuance response is missing a key")
        return str(key)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["HttpIdentityIssuer"]

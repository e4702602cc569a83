"""Port describing the identity-issuance collaborator."""

from __future__ import annotations

from typing import Protocol


class IdentityIssuerPort(Protocol):
    """Mints short-lived session credentials for a user identity."""

    async def issue_token(self, identity: str, *, lifetime_seconds: int) -> str:
        """Return a fresh session token for ``identity``."""


__all__ = ["IdentityIssuerPort"]

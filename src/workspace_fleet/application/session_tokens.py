"""Per-identity cache of short-lived session credentials for the gateway path."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from workspace_fleet.application.ports.identity import IdentityIssuerPort
from workspace_fleet.application.ports.token_store import SessionTokenEntry, TokenStorePort

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 5 * 60
DEFAULT_TOKEN_LIFETIME_SECONDS = 24 * 60 * 60


class SessionTokenCache:
    """Reuses an issued token for a short window, far below the token's real validity.

    Concurrent misses for the same identity may each issue a token; the last write wins.
    """

    def __init__(
        self,
        issuer: IdentityIssuerPort,
        store: TokenStorePort,
        *,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        token_lifetime_seconds: int = DEFAULT_TOKEN_LIFETIME_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._issuer = issuer
        self._store = store
        self._ttl = ttl_seconds
        self._lifetime = token_lifetime_seconds
        self._clock = clock

    async def get_token(self, identity: str) -> str:
        if not identity:
            raise ValueError("identity must be a non-empty string")
        now = self._clock()
        cached = self._store.get(identity)
        if cached is not None and cached.cache_expires_at > now:
            return cached.token

        token = await self._issuer.issue_token(identity, lifetime_seconds=self._lifetime)
        self._store.put(
            SessionTokenEntry(
                identity=identity,
                token=token,
                cache_expires_at=self._clock() + self._ttl,
            )
        )
        logger.debug(
            "issued session token",
            extra={"data": {"identity": identity, "refreshed": cached is not None}},
        )
        return token

    def invalidate(self, identity: str) -> None:
        self._store.discard(identity)


__all__ = ["DEFAULT_CACHE_TTL_SECONDS", "DEFAULT_TOKEN_LIFETIME_SECONDS", "SessionTokenCache"]

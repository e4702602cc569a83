"""Port describing storage for cached session tokens."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class SessionTokenEntry:
    identity: str
    token: str
    cache_expires_at: float


class TokenStorePort(Protocol):
    """Keyed store of session token entries; expiry is decided by the caller."""

    def get(self, identity: str) -> SessionTokenEntry | None:
        """Return the stored entry for ``identity``, expired or not."""

    def put(self, entry: SessionTokenEntry) -> None:
        """Store ``entry``, replacing any previous one for the same identity."""

    def discard(self, identity: str) -> None:
        """Remove the entry for ``identity``, if present."""


__all__ = ["SessionTokenEntry", "TokenStorePort"]

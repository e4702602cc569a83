"""In-memory implementation of the session token store port."""

from __future__ import annotations

from threading import Lock

from workspace_fleet.application.ports.token_store import SessionTokenEntry, TokenStorePort


class InMemoryTokenStore(TokenStorePort):
    """Keeps session tokens in memory for the lifetime of the process."""

    def __init__(self) -> None:
        self._entries: dict[str, SessionTokenEntry] = {}
        self._lock = Lock()

    def get(self, identity: str) -> SessionTokenEntry | None:
        with self._lock:
            return self._entries.get(identity)

    def put(self, entry: SessionTokenEntry) -> None:
        with self._lock:
            self._entries[entry.identity] = entry

    def discard(self, identity: str) -> None:
        with self._lock:
            self._entries.pop(identity, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["InMemoryTokenStore"]

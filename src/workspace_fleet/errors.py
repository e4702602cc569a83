"""Domain-specific exceptions shared across workspace fleet components."""

from __future__ import annotations

from typing import Any


class WorkspaceFleetError(Exception):
    """Base class for workspace fleet failures."""


class ControlPlaneError(WorkspaceFleetError):
    """Raised when the machine-control API answers with an error status."""

    def __init__(self, message: str, *, status: int | None = None, payload: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.payload = payload


class TerminalUnitStateError(WorkspaceFleetError):
    """Raised when a unit reaches a state it can never recover from while waiting."""

    def __init__(self, unit_id: str, state: str) -> None:
        super().__init__(f"unit {unit_id} failed: {state}")
        self.unit_id = unit_id
        self.state = state


class ReadinessTimeoutError(WorkspaceFleetError):
    """Raised when a unit does not become ready before the outer deadline."""

    def __init__(self, unit_id: str, *, elapsed_seconds: float) -> None:
        super().__init__(f"unit {unit_id} not ready after {elapsed_seconds:.1f}s")
        self.unit_id = unit_id
        self.elapsed_seconds = elapsed_seconds


class ExecTransportError(WorkspaceFleetError):
    """Raised when an exec or health request cannot reach the agent or gateway."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class WorkspaceLookupError(WorkspaceFleetError):
    """Raised when a workspace name cannot be resolved to an identifier."""


class IdentityIssuanceError(WorkspaceFleetError):
    """Raised when a session credential cannot be minted for an identity."""


__all__ = [
    "ControlPlaneError",
    "ExecTransportError",
    "IdentityIssuanceError",
    "ReadinessTimeoutError",
    "TerminalUnitStateError",
    "WorkspaceFleetError",
    "WorkspaceLookupError",
]

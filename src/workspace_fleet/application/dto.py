"""Data transfer objects returned to callers of the workspace service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from workspace_fleet.domain.compute_unit import ComputeUnit, UnitState

WorkspaceStatus = Literal["ready", "running", "failed", "missing"]


@dataclass(frozen=True, slots=True)
class WorkspaceHandle:
    """Caller-facing view of a unit created or acquired for a project."""

    id: str
    name: str
    state: str
    region: str | None
    private_ip: str | None
    endpoint: str | None
    partial: bool = False

    @classmethod
    def from_unit(cls, unit: ComputeUnit) -> WorkspaceHandle:
        return cls(
            id=unit.id,
            name=unit.name,
            state=unit.state.value,
            region=unit.region,
            private_ip=unit.private_address,
            endpoint=unit.public_endpoint,
            partial=unit.state is not UnitState.STARTED,
        )


@dataclass(frozen=True, slots=True)
class WorkspaceStatusView:
    unit_id: str
    status: WorkspaceStatus
    state: str | None = None
    partial: bool = False


@dataclass(frozen=True, slots=True)
class HealthReport:
    healthy: bool
    error: str | None = None


__all__ = ["HealthReport", "WorkspaceHandle", "WorkspaceStatus", "WorkspaceStatusView"]

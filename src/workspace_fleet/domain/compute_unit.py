"""Compute unit lifecycle records observed from the control plane."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Final

UNIT_NAME_PREFIX: Final[str] = "ws-"
UNIT_NAME_MAX_LENGTH: Final[int] = 30


class UnitState(str, Enum):
    """Machine states reported by the control plane."""

    CREATED = "created"
    STARTING = "starting"
    STARTED = "started"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"
    DESTROYED = "destroyed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: object) -> UnitState:
        try:
            return cls(str(raw).lower())
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_terminal(self) -> bool:
        return self in (UnitState.FAILED, UnitState.DESTROYED)

    @property
    def is_materializing(self) -> bool:
        return self in (UnitState.CREATED, UnitState.STARTING, UnitState.UNKNOWN)


class AppSuspension(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: object) -> AppSuspension:
        try:
            return cls(str(raw).lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True, slots=True)
class UnitResources:
    cpus: int
    cpu_kind: str
    memory_mb: int


@dataclass(frozen=True, slots=True)
class ComputeUnit:
    """Snapshot of a remote execution sandbox."""

    id: str
    name: str
    state: UnitState
    region: str | None = None
    image: str | None = None
    resources: UnitResources | None = None
    private_address: str | None = None
    public_endpoint: str | None = None
    created_at: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], *, public_endpoint: str | None = None) -> ComputeUnit:
        unit_id = payload.get("id")
        if not unit_id:
            raise ValueError("control plane machine payload is missing an id")
        config = payload.get("config") or {}
        guest = config.get("guest") if isinstance(config, Mapping) else None
        resources = None
        if isinstance(guest, Mapping):
            resources = UnitResources(
                cpus=int(guest.get("cpus") or 0),
                cpu_kind=str(guest.get("cpu_kind") or ""),
                memory_mb=int(guest.get("memory_mb") or 0),
            )
        image = config.get("image") if isinstance(config, Mapping) else None
        return cls(
            id=str(unit_id),
            name=str(payload.get("name") or ""),
            state=UnitState.parse(payload.get("state")),
            region=payload.get("region"),
            image=image,
            resources=resources,
            private_address=payload.get("private_ip"),
            public_endpoint=public_endpoint,
            created_at=payload.get("created_at"),
        )


@dataclass(frozen=True, slots=True)
class AppStatus:
    """Suspension state of the app that groups a project's units."""

    id: str
    name: str
    status: AppSuspension
    raw_status: str | None = None

    @property
    def is_suspended(self) -> bool:
        return self.status is AppSuspension.SUSPENDED


@dataclass(frozen=True, slots=True)
class CreateUnitOptions:
    """Caller overrides applied when creating a unit."""

    image: str | None = None
    memory_mb: int | None = None
    env: Mapping[str, str] = field(default_factory=dict)
    project_type: str | None = None


def derive_unit_name(project_id: str) -> str:
    """Return the deterministic unit name for ``project_id``."""

    return f"{UNIT_NAME_PREFIX}{project_id}"[:UNIT_NAME_MAX_LENGTH]


__all__ = [
    "AppStatus",
    "AppSuspension",
    "ComputeUnit",
    "CreateUnitOptions",
    "UNIT_NAME_MAX_LENGTH",
    "UnitResources",
    "UnitState",
    "derive_unit_name",
]

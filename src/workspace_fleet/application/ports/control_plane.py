"""Port describing the remote machine-control API."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from workspace_fleet.domain.compute_unit import AppStatus, ComputeUnit, CreateUnitOptions


class MachineControlPort(Protocol):
    """Machine CRUD plus app status/resume on the control plane."""

    @property
    def app_name(self) -> str:
        """Default app that groups units when no override is passed."""

    async def create(
        self,
        project_id: str,
        options: CreateUnitOptions,
        *,
        app: str | None = None,
    ) -> ComputeUnit:
        """Create a unit for ``project_id`` and return the control plane's view of it."""

    async def get(self, unit_id: str, *, app: str | None = None) -> ComputeUnit | None:
        """Return the unit, or ``None`` when the control plane does not know it."""

    async def start(self, unit_id: str, *, app: str | None = None) -> None:
        """Request a stopped unit to start."""

    async def stop(self, unit_id: str, *, app: str | None = None) -> None:
        """Request a running unit to stop."""

    async def destroy(self, unit_id: str, *, app: str | None = None) -> None:
        """Destroy the unit; succeeds when the unit is already gone."""

    async def list(self, *, app: str | None = None) -> list[ComputeUnit]:
        """Return every unit in the app."""

    async def app_status(self, app_name: str) -> AppStatus | None:
        """Return the app's suspension status, or ``None`` when the app is unknown."""

    async def resume_app(self, app_id: str) -> None:
        """Resume a suspended app."""

    async def get_app(self, app_name: str) -> Mapping[str, Any] | None:
        """Return the app record, or ``None`` when it does not exist."""

    async def create_app(self, app_name: str, *, org_slug: str) -> Mapping[str, Any]:
        """Create the app under ``org_slug`` and return its record."""


__all__ = ["MachineControlPort"]

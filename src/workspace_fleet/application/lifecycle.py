"""Unit lifecycle orchestration on top of the machine-control port."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time

from workspace_fleet.application.dto import HealthReport, WorkspaceStatusView
from workspace_fleet.application.images import select_image
from workspace_fleet.application.polling import Sleep
from workspace_fleet.application.ports.control_plane import MachineControlPort
from workspace_fleet.application.readiness import ReadinessWaiter
from workspace_fleet.application.singleton import SingletonEnforcer
from workspace_fleet.config.images import RuntimeImageSettings
from workspace_fleet.domain.compute_unit import ComputeUnit, CreateUnitOptions, UnitState, derive_unit_name
from workspace_fleet.domain.outcome import BestEffortOutcome
from workspace_fleet.errors import ControlPlaneError

logger = logging.getLogger(__name__)

_RESUME_STEP = "ensure_app_active"


class LifecycleManager:
    """Creates, reuses, waits for and tears down units for projects."""

    def __init__(
        self,
        control_plane: MachineControlPort,
        *,
        waiter: ReadinessWaiter | None = None,
        singleton: SingletonEnforcer | None = None,
        images: RuntimeImageSettings | None = None,
        resume_settle_seconds: float = 2.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._control_plane = control_plane
        self._waiter = waiter or ReadinessWaiter(control_plane)
        self._singleton = singleton or SingletonEnforcer(control_plane)
        self._images = images or RuntimeImageSettings()
        self._resume_settle_seconds = resume_settle_seconds
        self._sleep = sleep

    @property
    def app_name(self) -> str:
        return self._control_plane.app_name

    async def ensure_app_active(self, app: str | None = None) -> BestEffortOutcome:
        """Resume the app if it is suspended; never blocks unit creation on failure."""

        app_name = app or self._control_plane.app_name
        try:
            status = await self._control_plane.app_status(app_name)
            if status is None:
                logger.warning("app not found during suspension check", extra={"data": {"app": app_name}})
                return BestEffortOutcome.warning(_RESUME_STEP, "app not found", subject=app_name)
            if not status.is_suspended:
                return BestEffortOutcome.success(_RESUME_STEP, subject=app_name)

            logger.info("app is suspended, resuming", extra={"data": {"app": app_name, "app_id": status.id}})
            await self._control_plane.resume_app(status.id)
        except Exception as exc:
            logger.warning(
                "suspension check failed (ignored)",
                extra={"data": {"app": app_name, "error_type": type(exc).__name__, "error": str(exc)}},
            )
            return BestEffortOutcome.warning(_RESUME_STEP, str(exc) or type(exc).__name__, subject=app_name)

        if self._resume_settle_seconds > 0:
            await self._sleep(self._resume_settle_seconds)
        logger.info("app resumed", extra={"data": {"app": app_name}})
        return BestEffortOutcome.success(_RESUME_STEP, subject=app_name)

    async def create(
        self,
        project_id: str,
        options: CreateUnitOptions | None = None,
        *,
        app: str | None = None,
    ) -> ComputeUnit:
        if not project_id:
            raise ValueError("project_id must be a non-empty string")
        await self.ensure_app_active(app)
        resolved = self.resolve_options(options)
        start = time.monotonic()
        unit = await self._control_plane.create(project_id, resolved, app=app)
        logger.info(
            "unit created",
            extra={
                "data": {
                    "project_id": project_id,
                    "unit_id": unit.id,
                    "unit_name": unit.name,
                    "state": unit.state.value,
                    "image": resolved.image,
                    "elapsed_s": round(time.monotonic() - start, 3),
                }
            },
        )
        return unit

    def resolve_options(self, options: CreateUnitOptions | None) -> CreateUnitOptions:
        """Fill in the image: explicit option, then the configured override, then the policy table."""

        options = options or CreateUnitOptions()
        if options.image:
            return options
        image = self._images.override or select_image(options.project_type, self._images)
        return dataclasses.replace(options, image=image)

    async def acquire(
        self,
        project_id: str,
        options: CreateUnitOptions | None = None,
        *,
        initial_timeout: float = 30.0,
        max_timeout: float = 120.0,
        enforce_singleton: bool = False,
        app: str | None = None,
    ) -> ComputeUnit:
        """Return a started unit for the project, reusing the one that carries its name."""

        name = derive_unit_name(project_id)
        existing = await self._find_by_name(name, app=app)
        if existing is not None and existing.state is UnitState.STOPPING:
            logger.info("waiting for stopping unit", extra={"data": {"project_id": project_id, "unit_id": existing.id}})
            existing = await self._waiter.wait_until_stopped(existing.id, timeout=initial_timeout, app=app)
        if existing is not None and existing.state is UnitState.STARTED:
            logger.info("reusing started unit", extra={"data": {"project_id": project_id, "unit_id": existing.id}})
            unit = existing
        else:
            if existing is not None and existing.state is UnitState.STOPPED:
                logger.info("starting stopped unit", extra={"data": {"project_id": project_id, "unit_id": existing.id}})
                await self._control_plane.start(existing.id, app=app)
                unit_id = existing.id
            elif existing is not None and not existing.state.is_terminal:
                unit_id = existing.id
            else:
                unit_id = (await self.create(project_id, options, app=app)).id
            unit = await self.wait_until_ready(
                unit_id,
                initial_timeout=initial_timeout,
                max_timeout=max_timeout,
                app=app,
            )

        if enforce_singleton:
            await self.ensure_single_active(app, keep_unit_name=unit.name)
        return unit

    async def wait_until_ready(
        self,
        unit_id: str,
        *,
        initial_timeout: float = 30.0,
        max_timeout: float = 120.0,
        app: str | None = None,
    ) -> ComputeUnit:
        return await self._waiter.wait_until_ready(
            unit_id,
            initial_timeout=initial_timeout,
            max_timeout=max_timeout,
            app=app,
        )

    async def get(self, unit_id: str, *, app: str | None = None) -> ComputeUnit | None:
        return await self._control_plane.get(unit_id, app=app)

    async def start(self, unit_id: str, *, app: str | None = None) -> None:
        logger.info("starting unit", extra={"data": {"unit_id": unit_id}})
        await self._control_plane.start(unit_id, app=app)

    async def stop(self, unit_id: str, *, app: str | None = None) -> None:
        logger.info("stopping unit", extra={"data": {"unit_id": unit_id}})
        await self._control_plane.stop(unit_id, app=app)

    async def destroy(self, unit_id: str, *, app: str | None = None) -> None:
        logger.info("destroying unit", extra={"data": {"unit_id": unit_id}})
        await self._control_plane.destroy(unit_id, app=app)

    async def list(self, *, app: str | None = None) -> list[ComputeUnit]:
        return await self._control_plane.list(app=app)

    async def ensure_single_active(
        self,
        app: str | None = None,
        keep_unit_name: str | None = None,
    ) -> list[BestEffortOutcome]:
        return await self._singleton.ensure_single_active(app, keep_unit_name)

    async def describe(self, unit_id: str, *, app: str | None = None) -> WorkspaceStatusView:
        """Report a unit that is still materializing as running with ``partial`` set."""

        unit = await self._control_plane.get(unit_id, app=app)
        if unit is None:
            return WorkspaceStatusView(unit_id=unit_id, status="missing")
        if unit.state.is_terminal:
            return WorkspaceStatusView(unit_id=unit_id, status="failed", state=unit.state.value)
        if unit.state is UnitState.STARTED:
            return WorkspaceStatusView(unit_id=unit_id, status="ready", state=unit.state.value)
        return WorkspaceStatusView(
            unit_id=unit_id,
            status="running",
            state=unit.state.value,
            partial=unit.state.is_materializing,
        )

    async def initialize_app(self, *, org_slug: str, app: str | None = None) -> None:
        app_name = app or self._control_plane.app_name
        if await self._control_plane.get_app(app_name) is not None:
            logger.info("app exists", extra={"data": {"app": app_name}})
            return
        logger.info("creating app", extra={"data": {"app": app_name, "org_slug": org_slug}})
        await self._control_plane.create_app(app_name, org_slug=org_slug)

    async def health_check(self, *, app: str | None = None) -> HealthReport:
        app_name = app or self._control_plane.app_name
        try:
            found = await self._control_plane.get_app(app_name)
        except ControlPlaneError as exc:
            return HealthReport(healthy=False, error=str(exc))
        if found is None:
            return HealthReport(healthy=False, error=f"app {app_name} not found")
        return HealthReport(healthy=True)

    async def _find_by_name(self, name: str, *, app: str | None) -> ComputeUnit | None:
        for unit in await self._control_plane.list(app=app):
            if unit.name == name and unit.state is not UnitState.DESTROYED:
                return unit
        return None


__all__ = ["LifecycleManager"]

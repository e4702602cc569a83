"""Inbound facade combining lifecycle management and command routing."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence

from workspace_fleet.application.dto import HealthReport, WorkspaceHandle, WorkspaceStatusView
from workspace_fleet.application.execution_router import ExecutionRouter
from workspace_fleet.application.lifecycle import LifecycleManager
from workspace_fleet.domain.compute_unit import ComputeUnit, CreateUnitOptions
from workspace_fleet.domain.execution import DEFAULT_WORKING_DIRECTORY, ExecResult
from workspace_fleet.domain.outcome import BestEffortOutcome

logger = logging.getLogger(__name__)

Closer = Callable[[], Awaitable[None]]


class WorkspaceService:
    """What callers use to create, reach and tear down project workspaces."""

    def __init__(
        self,
        lifecycle: LifecycleManager,
        router: ExecutionRouter,
        *,
        org_slug: str = "personal",
        initial_timeout_seconds: float = 30.0,
        max_timeout_seconds: float = 120.0,
        closers: Sequence[Closer] = (),
    ) -> None:
        self._lifecycle = lifecycle
        self._router = router
        self._org_slug = org_slug
        self._initial_timeout = initial_timeout_seconds
        self._max_timeout = max_timeout_seconds
        self._closers = tuple(closers)

    @property
    def lifecycle(self) -> LifecycleManager:
        return self._lifecycle

    @property
    def router(self) -> ExecutionRouter:
        return self._router

    async def create_workspace(
        self,
        project_id: str,
        *,
        image: str | None = None,
        memory_mb: int | None = None,
        env: Mapping[str, str] | None = None,
        project_type: str | None = None,
    ) -> WorkspaceHandle:
        options = CreateUnitOptions(
            image=image,
            memory_mb=memory_mb,
            env=dict(env or {}),
            project_type=project_type,
        )
        unit = await self._lifecycle.create(project_id, options)
        return WorkspaceHandle.from_unit(unit)

    async def acquire_workspace(
        self,
        project_id: str,
        *,
        image: str | None = None,
        memory_mb: int | None = None,
        env: Mapping[str, str] | None = None,
        project_type: str | None = None,
        enforce_singleton: bool = False,
    ) -> WorkspaceHandle:
        options = CreateUnitOptions(
            image=image,
            memory_mb=memory_mb,
            env=dict(env or {}),
            project_type=project_type,
        )
        unit = await self._lifecycle.acquire(
            project_id,
            options,
            initial_timeout=self._initial_timeout,
            max_timeout=self._max_timeout,
            enforce_singleton=enforce_singleton,
        )
        return WorkspaceHandle.from_unit(unit)

    async def exec_in_workspace(
        self,
        endpoint: str,
        command: str,
        cwd: str = DEFAULT_WORKING_DIRECTORY,
        unit_id: str | None = None,
        timeout_ms: int | None = None,
        *,
        argv: Sequence[str] | None = None,
        silent: bool = False,
    ) -> ExecResult:
        return await self._router.exec_direct(
            endpoint,
            command,
            cwd,
            unit_id=unit_id,
            timeout_ms=timeout_ms,
            argv=argv,
            silent=silent,
        )

    async def exec_by_workspace_name(
        self,
        owner_name: str | None,
        workspace_name: str,
        identity: str,
        command: str,
        cwd: str = DEFAULT_WORKING_DIRECTORY,
        *,
        argv: Sequence[str] | None = None,
        silent: bool = False,
    ) -> ExecResult:
        return await self._router.exec_by_name(
            workspace_name,
            identity,
            command,
            cwd,
            owner_name=owner_name,
            argv=argv,
            silent=silent,
        )

    async def wait_until_ready(
        self,
        unit_id: str,
        initial_timeout_ms: int = 30_000,
        max_timeout_ms: int = 120_000,
    ) -> ComputeUnit:
        return await self._lifecycle.wait_until_ready(
            unit_id,
            initial_timeout=initial_timeout_ms / 1000,
            max_timeout=max_timeout_ms / 1000,
        )

    async def stop_workspace(self, unit_id: str) -> None:
        await self._lifecycle.stop(unit_id)

    async def destroy_workspace(self, unit_id: str) -> None:
        await self._lifecycle.destroy(unit_id)

    async def list_workspaces(self) -> list[ComputeUnit]:
        return await self._lifecycle.list()

    async def ensure_single_active_workspace(
        self,
        app_name: str | None = None,
        keep_name: str | None = None,
    ) -> list[BestEffortOutcome]:
        return await self._lifecycle.ensure_single_active(app_name, keep_unit_name=keep_name)

    async def describe_workspace(self, unit_id: str) -> WorkspaceStatusView:
        return await self._lifecycle.describe(unit_id)

    async def health_check(self) -> HealthReport:
        return await self._lifecycle.health_check()

    async def initialize_app(self) -> None:
        await self._lifecycle.initialize_app(org_slug=self._org_slug)

    async def aclose(self) -> None:
        for close in self._closers:
            await close()
        logger.debug("workspace service closed")


__all__ = ["WorkspaceService"]

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from workspace_fleet.application.ports.control_plane import MachineControlPort
from workspace_fleet.application.ports.exec_transport import DirectExecTransport, GatewayPort
from workspace_fleet.application.ports.identity import IdentityIssuerPort
from workspace_fleet.domain.compute_unit import (
    AppStatus,
    AppSuspension,
    ComputeUnit,
    CreateUnitOptions,
    UnitState,
    derive_unit_name,
)
from workspace_fleet.errors import ControlPlaneError


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time instantly."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_unit(
    unit_id: str,
    *,
    name: str | None = None,
    state: UnitState = UnitState.STARTED,
    app: str = "workspaces",
) -> ComputeUnit:
    return ComputeUnit(
        id=unit_id,
        name=name or f"ws-{unit_id}",
        state=state,
        region="fra",
        public_endpoint=f"https://{app}.fly.dev",
    )


class FakeControlPlane(MachineControlPort):
    """In-memory control plane with scriptable ``get`` observations."""

    def __init__(self, *, app_name: str = "workspaces") -> None:
        self._app_name = app_name
        self.units: dict[str, ComputeUnit] = {}
        self.get_script: dict[str, list[ComputeUnit | None | Exception]] = {}
        self.stop_failures: dict[str, Exception] = {}
        self.list_error: Exception | None = None
        self.app: AppStatus | None = AppStatus(id="app-1", name=app_name, status=AppSuspension.ACTIVE)
        self.app_status_error: Exception | None = None
        self.app_record: dict[str, Any] | None = {"name": app_name}
        self.calls: list[tuple[str, str]] = []
        self.created: list[tuple[str, CreateUnitOptions]] = []
        self.created_apps: list[tuple[str, str]] = []
        self._next_id = 0

    @property
    def app_name(self) -> str:
        return self._app_name

    def add(self, unit: ComputeUnit) -> ComputeUnit:
        self.units[unit.id] = unit
        return unit

    def script_get(self, unit_id: str, *observations: ComputeUnit | None | Exception) -> None:
        self.get_script[unit_id] = list(observations)

    async def create(
        self,
        project_id: str,
        options: CreateUnitOptions,
        *,
        app: str | None = None,
    ) -> ComputeUnit:
        self._next_id += 1
        unit = make_unit(f"m{self._next_id}", name=derive_unit_name(project_id), state=UnitState.CREATED)
        self.created.append((project_id, options))
        self.calls.append(("create", unit.id))
        return self.add(unit)

    async def get(self, unit_id: str, *, app: str | None = None) -> ComputeUnit | None:
        self.calls.append(("get", unit_id))
        script = self.get_script.get(unit_id)
        if script:
            observation = script.pop(0) if len(script) > 1 else script[0]
            if isinstance(observation, Exception):
                raise observation
            return observation
        return self.units.get(unit_id)

    async def start(self, unit_id: str, *, app: str | None = None) -> None:
        self.calls.append(("start", unit_id))

    async def stop(self, unit_id: str, *, app: str | None = None) -> None:
        self.calls.append(("stop", unit_id))
        failure = self.stop_failures.get(unit_id)
        if failure is not None:
            raise failure

    async def destroy(self, unit_id: str, *, app: str | None = None) -> None:
        self.calls.append(("destroy", unit_id))
        self.units.pop(unit_id, None)

    async def list(self, *, app: str | None = None) -> list[ComputeUnit]:
        self.calls.append(("list", app or self._app_name))
        if self.list_error is not None:
            raise self.list_error
        return [*self.units.values()]

    async def app_status(self, app_name: str) -> AppStatus | None:
        self.calls.append(("app_status", app_name))
        if self.app_status_error is not None:
            raise self.app_status_error
        return self.app

    async def resume_app(self, app_id: str) -> None:
        self.calls.append(("resume_app", app_id))

    async def get_app(self, app_name: str) -> Mapping[str, Any] | None:
        self.calls.append(("get_app", app_name))
        return self.app_record

    async def create_app(self, app_name: str, *, org_slug: str) -> Mapping[str, Any]:
        self.created_apps.append((app_name, org_slug))
        self.app_record = {"name": app_name}
        return self.app_record

    def stopped(self) -> list[str]:
        return [unit_id for call, unit_id in self.calls if call == "stop"]


class FakeIdentityIssuer(IdentityIssuerPort):
    def __init__(self) -> None:
        self.issued: list[tuple[str, int]] = []

    async def issue_token(self, identity: str, *, lifetime_seconds: int) -> str:
        self.issued.append((identity, lifetime_seconds))
        return f"token-{identity}-{len(self.issued)}"


class RecordingDirectTransport(DirectExecTransport):
    def __init__(
        self,
        *,
        response: Mapping[str, Any] | None = None,
        error: Exception | None = None,
        health: list[bool | Exception] | None = None,
    ) -> None:
        self.response = response if response is not None else {"stdout": "ok", "stderr": ""}
        self.error = error
        self.health = health or [True]
        self.requests: list[dict[str, Any]] = []
        self.health_requests: list[dict[str, Any]] = []

    async def post_exec(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        *,
        headers: Mapping[str, str],
        timeout_seconds: float,
    ) -> Mapping[str, Any]:
        self.requests.append(
            {"endpoint": endpoint, "payload": dict(payload), "headers": dict(headers), "timeout": timeout_seconds}
        )
        if self.error is not None:
            raise self.error
        return self.response

    async def get_health(
        self,
        endpoint: str,
        *,
        headers: Mapping[str, str],
        timeout_seconds: float,
    ) -> bool:
        self.health_requests.append({"endpoint": endpoint, "headers": dict(headers)})
        outcome = self.health.pop(0) if len(self.health) > 1 else self.health[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingGateway(GatewayPort):
    def __init__(
        self,
        *,
        workspace_id: str = "ws-uuid-1",
        response: Mapping[str, Any] | None = None,
        lookup_error: Exception | None = None,
        exec_error: Exception | None = None,
    ) -> None:
        self.workspace_id = workspace_id
        self.response = response if response is not None else {"stdout": "hi", "stderr": "", "exitCode": 0}
        self.lookup_error = lookup_error
        self.exec_error = exec_error
        self.lookups: list[tuple[str, str | None]] = []
        self.forwarded: list[dict[str, Any]] = []

    async def resolve_workspace_id(self, workspace_name: str, *, owner_name: str | None = None) -> str:
        self.lookups.append((workspace_name, owner_name))
        if self.lookup_error is not None:
            raise self.lookup_error
        return self.workspace_id

    async def forward_exec(
        self,
        workspace_id: str,
        payload: Mapping[str, Any],
        *,
        session_token: str,
        timeout_seconds: float,
    ) -> Mapping[str, Any]:
        self.forwarded.append(
            {
                "workspace_id": workspace_id,
                "payload": dict(payload),
                "session_token": session_token,
                "timeout": timeout_seconds,
            }
        )
        if self.exec_error is not None:
            raise self.exec_error
        return self.response


def control_plane_error(status: int | None = 500) -> ControlPlaneError:
    return ControlPlaneError("boom", status=status)


__all__ = [
    "FakeClock",
    "FakeControlPlane",
    "FakeIdentityIssuer",
    "RecordingDirectTransport",
    "RecordingGateway",
    "control_plane_error",
    "make_unit",
]

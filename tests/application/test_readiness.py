from __future__ import annotations

import logging

import pytest

from tests.fixtures.fakes import FakeClock, FakeControlPlane, control_plane_error, make_unit
from workspace_fleet.application.readiness import ReadinessWaiter
from workspace_fleet.domain.compute_unit import UnitState
from workspace_fleet.errors import ReadinessTimeoutError, TerminalUnitStateError

pytestmark = pytest.mark.anyio("asyncio")


def _waiter(control_plane: FakeControlPlane, clock: FakeClock) -> ReadinessWaiter:
    return ReadinessWaiter(control_plane, clock=clock, sleep=clock.sleep)


async def test_not_found_polls_are_retried_until_started() -> None:
    control_plane = FakeControlPlane()
    clock = FakeClock()
    started = make_unit("m1")
    control_plane.script_get("m1", None, None, None, started)

    unit = await _waiter(control_plane, clock).wait_until_ready("m1")

    assert unit is started
    assert sum(clock.sleeps) < 30.0 + 2.0
    assert clock.sleeps == [0.5, 0.5, 0.5]


async def test_failed_unit_raises_within_one_poll() -> None:
    control_plane = FakeControlPlane()
    clock = FakeClock()
    control_plane.script_get("m1", make_unit("m1", state=UnitState.FAILED))

    with pytest.raises(TerminalUnitStateError, match="unit m1 failed: failed"):
        await _waiter(control_plane, clock).wait_until_ready("m1")

    assert clock.sleeps == []


async def test_destroyed_unit_is_terminal() -> None:
    control_plane = FakeControlPlane()
    clock = FakeClock()
    control_plane.script_get("m1", None, make_unit("m1", state=UnitState.DESTROYED))

    with pytest.raises(TerminalUnitStateError):
        await _waiter(control_plane, clock).wait_until_ready("m1")


async def test_control_plane_errors_are_retried() -> None:
    control_plane = FakeControlPlane()
    clock = FakeClock()
    control_plane.script_get("m1", control_plane_error(502), control_plane_error(None), make_unit("m1"))

    unit = await _waiter(control_plane, clock).wait_until_ready("m1")

    assert unit.state is UnitState.STARTED


async def test_switches_to_slow_phase_and_times_out(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="workspace_fleet.application.readiness")
    control_plane = FakeControlPlane()
    clock = FakeClock()
    control_plane.script_get("m1", make_unit("m1", state=UnitState.STARTING))

    with pytest.raises(ReadinessTimeoutError) as excinfo:
        await _waiter(control_plane, clock).wait_until_ready("m1", initial_timeout=2.0, max_timeout=5.0)

    assert excinfo.value.elapsed_seconds >= 5.0
    assert 0.5 in clock.sleeps and 1.0 in clock.sleeps
    phase_logs = [record for record in caplog.records if "polling less often" in record.getMessage()]
    assert len(phase_logs) == 1


async def test_wait_until_stopped_returns_the_settled_unit() -> None:
    control_plane = FakeControlPlane()
    clock = FakeClock()
    control_plane.script_get(
        "m1",
        make_unit("m1", state=UnitState.STOPPING),
        control_plane_error(503),
        make_unit("m1", state=UnitState.STOPPED),
    )

    unit = await _waiter(control_plane, clock).wait_until_stopped("m1")

    assert unit is not None and unit.state is UnitState.STOPPED
    assert clock.sleeps == [0.5, 0.5]


async def test_wait_until_stopped_reports_a_unit_destroyed_on_stop() -> None:
    control_plane = FakeControlPlane()
    control_plane.script_get("m1", make_unit("m1", state=UnitState.STOPPING), None)

    assert await _waiter(control_plane, FakeClock()).wait_until_stopped("m1") is None


async def test_wait_until_stopped_times_out() -> None:
    control_plane = FakeControlPlane()
    control_plane.script_get("m1", make_unit("m1", state=UnitState.STOPPING))

    with pytest.raises(ReadinessTimeoutError):
        await _waiter(control_plane, FakeClock()).wait_until_stopped("m1", timeout=5.0)

from __future__ import annotations

import pytest

from tests.fixtures.fakes import FakeClock
from workspace_fleet.application.polling import PollDeadlineExceeded, PollPhase, PollPolicy, poll_until

pytestmark = pytest.mark.anyio("asyncio")


class Flaky(Exception):
    pass


async def test_poll_until_returns_first_success() -> None:
    clock = FakeClock()
    values = iter([0, 0, 1])

    async def probe() -> int:
        return next(values)

    result = await poll_until(
        probe,
        policy=PollPolicy(),
        is_success=lambda value: value == 1,
        clock=clock,
        sleep=clock.sleep,
    )

    assert result.value == 1
    assert result.attempts == 3
    assert clock.sleeps == [0.5, 0.5]
    assert result.phase is PollPhase.FAST


async def test_poll_until_switches_to_slow_phase_once() -> None:
    clock = FakeClock()
    phases: list[PollPhase] = []

    async def probe() -> bool:
        return clock.now - 1000.0 >= 3.0

    result = await poll_until(
        probe,
        policy=PollPolicy(fast_interval=0.5, slow_interval=1.0, phase_boundary=1.0, deadline=10.0),
        is_success=bool,
        on_phase_change=lambda phase, elapsed: phases.append(phase),
        clock=clock,
        sleep=clock.sleep,
    )

    assert result.phase is PollPhase.SLOW
    assert phases == [PollPhase.SLOW]
    assert clock.sleeps[:3] == [0.5, 0.5, 0.5]
    assert set(clock.sleeps[3:]) == {1.0}


async def test_poll_until_retries_transient_errors_until_deadline() -> None:
    clock = FakeClock()

    async def probe() -> bool:
        raise Flaky("nope")

    with pytest.raises(PollDeadlineExceeded) as excinfo:
        await poll_until(
            probe,
            policy=PollPolicy(fast_interval=1.0, slow_interval=1.0, phase_boundary=5.0, deadline=5.0),
            is_success=bool,
            transient_errors=(Flaky,),
            clock=clock,
            sleep=clock.sleep,
        )

    assert excinfo.value.attempts == 5
    assert isinstance(excinfo.value.last_error, Flaky)
    assert excinfo.value.elapsed >= 5.0


async def test_poll_until_propagates_non_transient_errors() -> None:
    clock = FakeClock()

    async def probe() -> bool:
        raise RuntimeError("bug")

    with pytest.raises(RuntimeError):
        await poll_until(probe, policy=PollPolicy(), is_success=bool, clock=clock, sleep=clock.sleep)
    assert clock.sleeps == []


async def test_poll_until_raises_terminal_error() -> None:
    clock = FakeClock()

    async def probe() -> str:
        return "failed"

    with pytest.raises(LookupError, match="failed"):
        await poll_until(
            probe,
            policy=PollPolicy(),
            is_success=lambda value: value == "started",
            is_terminal=lambda value: value == "failed",
            terminal_error=lambda value: LookupError(value),
            clock=clock,
            sleep=clock.sleep,
        )


def test_poll_policy_validates_intervals() -> None:
    with pytest.raises(ValueError):
        PollPolicy(fast_interval=0)
    with pytest.raises(ValueError):
        PollPolicy(deadline=0)

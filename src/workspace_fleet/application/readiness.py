"""Wait for a unit to reach the started state."""

from __future__ import annotations

import asyncio
import logging
import time

from workspace_fleet.application.polling import (
    Clock,
    PollDeadlineExceeded,
    PollPhase,
    PollPolicy,
    Sleep,
    poll_until,
)
from workspace_fleet.application.ports.control_plane import MachineControlPort
from workspace_fleet.domain.compute_unit import ComputeUnit, UnitState
from workspace_fleet.errors import ControlPlaneError, ReadinessTimeoutError, TerminalUnitStateError

logger = logging.getLogger(__name__)

_SETTLED_STATES = frozenset({UnitState.STOPPED, UnitState.FAILED, UnitState.DESTROYED})


class ReadinessWaiter:
    """Polls the control plane until a unit is started or has permanently failed.

    A unit the control plane does not know yet is treated as still being created, and
    control-plane errors during a poll are retried within the overall budget. Only the
    failed/destroyed states end the wait early.
    """

    def __init__(
        self,
        control_plane: MachineControlPort,
        *,
        fast_interval: float = 0.5,
        slow_interval: float = 1.0,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._control_plane = control_plane
        self._fast_interval = fast_interval
        self._slow_interval = slow_interval
        self._clock = clock
        self._sleep = sleep

    async def wait_until_ready(
        self,
        unit_id: str,
        *,
        initial_timeout: float = 30.0,
        max_timeout: float = 120.0,
        app: str | None = None,
    ) -> ComputeUnit:
        policy = PollPolicy(
            fast_interval=self._fast_interval,
            slow_interval=self._slow_interval,
            phase_boundary=initial_timeout,
            deadline=max_timeout,
        )

        async def probe() -> ComputeUnit | None:
            return await self._control_plane.get(unit_id, app=app)

        def on_phase_change(phase: PollPhase, elapsed: float) -> None:
            logger.info(
                "unit still not ready, polling less often",
                extra={"data": {"unit_id": unit_id, "phase": phase.value, "elapsed_s": round(elapsed, 3)}},
            )

        try:
            result = await poll_until(
                probe,
                policy=policy,
                is_success=lambda unit: unit is not None and unit.state is UnitState.STARTED,
                is_terminal=lambda unit: unit is not None and unit.state.is_terminal,
                terminal_error=lambda unit: TerminalUnitStateError(unit_id, _state_of(unit)),
                transient_errors=(ControlPlaneError,),
                on_phase_change=on_phase_change,
                clock=self._clock,
                sleep=self._sleep,
            )
        except PollDeadlineExceeded as exc:
            logger.warning(
                "unit readiness deadline exceeded",
                extra={
                    "data": {
                        "unit_id": unit_id,
                        "elapsed_s": round(exc.elapsed, 3),
                        "attempts": exc.attempts,
                        "last_error": str(exc.last_error) if exc.last_error else None,
                    }
                },
            )
            raise ReadinessTimeoutError(unit_id, elapsed_seconds=exc.elapsed) from exc

        unit = result.value
        if unit is None:
            raise TerminalUnitStateError(unit_id, "missing")
        logger.info(
            "unit ready",
            extra={
                "data": {
                    "unit_id": unit_id,
                    "elapsed_s": round(result.elapsed, 3),
                    "attempts": result.attempts,
                    "phase": result.phase.value,
                }
            },
        )
        return unit

    async def wait_until_stopped(
        self,
        unit_id: str,
        *,
        timeout: float = 30.0,
        app: str | None = None,
    ) -> ComputeUnit | None:
        """Wait for a stopping unit to settle; ``None`` means it was destroyed on stop."""

        policy = PollPolicy(
            fast_interval=self._fast_interval,
            slow_interval=self._slow_interval,
            phase_boundary=timeout,
            deadline=timeout,
        )

        async def probe() -> ComputeUnit | None:
            return await self._control_plane.get(unit_id, app=app)

        try:
            result = await poll_until(
                probe,
                policy=policy,
                is_success=lambda unit: unit is None or unit.state in _SETTLED_STATES,
                transient_errors=(ControlPlaneError,),
                clock=self._clock,
                sleep=self._sleep,
            )
        except PollDeadlineExceeded as exc:
            raise ReadinessTimeoutError(unit_id, elapsed_seconds=exc.elapsed) from exc
        logger.info(
            "unit settled after stop",
            extra={"data": {"unit_id": unit_id, "state": _state_of(result.value), "attempts": result.attempts}},
        )
        return result.value


def _state_of(unit: ComputeUnit | None) -> str:
    return unit.state.value if unit is not None else "missing"


__all__ = ["ReadinessWaiter"]

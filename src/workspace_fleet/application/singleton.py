"""Best-effort convergence to at most one started unit per app."""

from __future__ import annotations

import asyncio
import logging

from workspace_fleet.application.ports.control_plane import MachineControlPort
from workspace_fleet.domain.compute_unit import ComputeUnit, UnitState
from workspace_fleet.domain.outcome import BestEffortOutcome

logger = logging.getLogger(__name__)

_STEP = "ensure_single_active"


class SingletonEnforcer:
    """Stops every started unit except the one to keep.

    This is a list-then-stop sweep without any compare-and-swap: two concurrent sweeps
    may both act on the same snapshot. Failures never propagate; they come back as
    warning outcomes.
    """

    def __init__(self, control_plane: MachineControlPort) -> None:
        self._control_plane = control_plane

    async def ensure_single_active(
        self,
        app: str | None = None,
        keep_unit_name: str | None = None,
    ) -> list[BestEffortOutcome]:
        logger.info(
            "ensuring single active unit",
            extra={"data": {"app": app or self._control_plane.app_name, "keep": keep_unit_name}},
        )
        try:
            units = await self._control_plane.list(app=app)
        except Exception as exc:
            logger.warning(
                "failed to list units for singleton sweep (ignored)",
                extra={"data": {"app": app, "error_type": type(exc).__name__, "error": str(exc)}},
            )
            return [BestEffortOutcome.warning(_STEP, f"list failed: {exc}")]

        to_stop = [
            unit for unit in units if unit.state is UnitState.STARTED and unit.name != keep_unit_name
        ]
        if not to_stop:
            return []

        logger.info(
            "stopping conflicting units",
            extra={"data": {"app": app, "units": [unit.name for unit in to_stop]}},
        )
        return list(await asyncio.gather(*(self._stop(unit, app=app) for unit in to_stop)))

    async def _stop(self, unit: ComputeUnit, *, app: str | None) -> BestEffortOutcome:
        try:
            await self._control_plane.stop(unit.id, app=app)
        except Exception as exc:
            logger.warning(
                "failed to stop conflicting unit (ignored)",
                extra={
                    "data": {
                        "unit_id": unit.id,
                        "unit_name": unit.name,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    }
                },
            )
            return BestEffortOutcome.warning(_STEP, str(exc) or type(exc).__name__, subject=unit.id)
        return BestEffortOutcome.success(_STEP, subject=unit.id)


__all__ = ["SingletonEnforcer"]

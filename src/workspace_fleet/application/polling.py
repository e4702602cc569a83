"""Scheduled-retry loop with a fast phase, a slow phase and an outer deadline.

The loop never sleeps on its own: the caller injects ``clock`` and ``sleep`` so the
phase policy can be exercised without real time passing.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class PollPhase(str, Enum):
    FAST = "fast"
    SLOW = "slow"


@dataclass(frozen=True, slots=True)
class PollPolicy:
    """Intervals and deadlines (seconds) for a two-phase poll."""

    fast_interval: float = 0.5
    slow_interval: float = 1.0
    phase_boundary: float = 30.0
    deadline: float = 120.0

    def __post_init__(self) -> None:
        if self.fast_interval <= 0 or self.slow_interval <= 0:
            raise ValueError("poll intervals must be positive")
        if self.deadline <= 0:
            raise ValueError("poll deadline must be positive")
        if self.phase_boundary < 0:
            raise ValueError("phase boundary must be non-negative")

    def interval(self, phase: PollPhase) -> float:
        return self.fast_interval if phase is PollPhase.FAST else self.slow_interval


@dataclass(frozen=True, slots=True)
class PollResult(Generic[T]):
    value: T
    elapsed: float
    attempts: int
    phase: PollPhase


class PollDeadlineExceeded(Exception):
    """Raised when the outer deadline passes without a successful observation."""

    def __init__(self, *, elapsed: float, attempts: int, last_error: BaseException | None) -> None:
        super().__init__(f"poll deadline exceeded after {elapsed:.1f}s ({attempts} attempts)")
        self.elapsed = elapsed
        self.attempts = attempts
        self.last_error = last_error


async def poll_until(
    probe: Callable[[], Awaitable[T]],
    *,
    policy: PollPolicy,
    is_success: Callable[[T], bool],
    is_terminal: Callable[[T], bool] = lambda _: False,
    terminal_error: Callable[[T], BaseException] | None = None,
    transient_errors: tuple[type[BaseException], ...] = (),
    on_phase_change: Callable[[PollPhase, float], None] | None = None,
    clock: Clock = time.monotonic,
    sleep: Sleep = asyncio.sleep,
) -> PollResult[T]:
    """Call ``probe`` until ``is_success`` holds, a terminal observation appears, or time runs out.

    Observations that are neither successful nor terminal (including probes that raise
    one of ``transient_errors``) are retried after the current phase's interval.
    """

    start = clock()
    phase = PollPhase.FAST
    attempts = 0
    last_error: BaseException | None = None

    while True:
        elapsed = clock() - start
        if elapsed >= policy.deadline:
            raise PollDeadlineExceeded(elapsed=elapsed, attempts=attempts, last_error=last_error)

        attempts += 1
        try:
            observation = await probe()
        except transient_errors as exc:
            last_error = exc
        else:
            if is_success(observation):
                return PollResult(
                    value=observation,
                    elapsed=clock() - start,
                    attempts=attempts,
                    phase=phase,
                )
            if is_terminal(observation):
                if terminal_error is None:
                    raise RuntimeError(f"poll observed terminal value: {observation!r}")
                raise terminal_error(observation)

        elapsed = clock() - start
        if phase is PollPhase.FAST and elapsed > policy.phase_boundary:
            phase = PollPhase.SLOW
            if on_phase_change is not None:
                on_phase_change(phase, elapsed)
        await sleep(policy.interval(phase))


__all__ = [
    "Clock",
    "PollDeadlineExceeded",
    "PollPhase",
    "PollPolicy",
    "PollResult",
    "Sleep",
    "poll_until",
]

"""Typed result for steps that may fail without aborting the surrounding flow."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BestEffortOutcome:
    """Either ``ok`` or a warning carrying the reason the step was skipped."""

    step: str
    reason: str | None = None
    subject: str | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @property
    def is_warning(self) -> bool:
        return self.reason is not None

    @classmethod
    def success(cls, step: str, *, subject: str | None = None) -> BestEffortOutcome:
        return cls(step=step, subject=subject)

    @classmethod
    def warning(cls, step: str, reason: str, *, subject: str | None = None) -> BestEffortOutcome:
        return cls(step=step, reason=reason or "unknown error", subject=subject)


__all__ = ["BestEffortOutcome"]

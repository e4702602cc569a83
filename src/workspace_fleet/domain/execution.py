"""Command execution request/result records."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

DEFAULT_WORKING_DIRECTORY = "/home/coder/project"


@dataclass(frozen=True, slots=True)
class ExecRequest:
    """A command addressed to a unit id or a workspace name."""

    target: str
    command: str
    working_directory: str = DEFAULT_WORKING_DIRECTORY
    argv: Sequence[str] = field(default_factory=tuple)
    timeout_ms: int | None = None
    silent: bool = False

    def __post_init__(self) -> None:
        if not self.command and not self.argv:
            raise ValueError("exec request requires a command or argv")
        if self.timeout_ms is not None and self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")

    def payload(self) -> dict[str, object]:
        body: dict[str, object] = {"command": self.command, "cwd": self.working_directory}
        if self.argv:
            body["argv"] = list(self.argv)
        return body


@dataclass(frozen=True, slots=True)
class ExecResult:
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @classmethod
    def failure(cls, message: str) -> ExecResult:
        return cls(exit_code=1, stdout="", stderr=message or "execution failed")


__all__ = ["DEFAULT_WORKING_DIRECTORY", "ExecRequest", "ExecResult"]

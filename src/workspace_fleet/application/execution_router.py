"""Route commands into units, either directly with a sticky header or via the gateway."""

from __future__ import annotations

import asyncio
import logging
import shlex
import time
from collections.abc import Mapping, Sequence
from typing import Any

from workspace_fleet.application.polling import Clock, PollDeadlineExceeded, PollPolicy, Sleep, poll_until
from workspace_fleet.application.ports.exec_transport import DirectExecTransport, GatewayPort
from workspace_fleet.application.session_tokens import SessionTokenCache
from workspace_fleet.config.gateway import GatewayWorkdirMode
from workspace_fleet.domain.execution import DEFAULT_WORKING_DIRECTORY, ExecRequest, ExecResult
from workspace_fleet.errors import ExecTransportError, WorkspaceFleetError

logger = logging.getLogger(__name__)

STICKY_INSTANCE_HEADER = "fly-force-instance-id"
AGENT_ERROR_PREFIX = "Agent Error: "


def sticky_headers(unit_id: str | None) -> dict[str, str]:
    """Pin a request to one backend instance when the unit id is known."""

    return {STICKY_INSTANCE_HEADER: unit_id} if unit_id else {}


def shell_prefixed_command(request: ExecRequest) -> str:
    """Legacy gateway form: change directory inside the command string itself."""

    command = request.command or shlex.join(request.argv)
    return f"cd {shlex.quote(request.working_directory)} 2>/dev/null; {command}"


def _coerce_exit_code(raw: object) -> int:
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        raise ExecTransportError(f"malformed exit code: {raw!r}")
    try:
        return int(raw)
    except (OverflowError, ValueError) as exc:
        raise ExecTransportError(f"malformed exit code: {raw!r}") from exc


def direct_exit_code(body: Mapping[str, Any]) -> int:
    raw = body.get("exitCode", body.get("exit_code"))
    return _coerce_exit_code(raw) if raw is not None else 0


def gateway_exit_code(body: Mapping[str, Any]) -> int:
    raw = body.get("exitCode")
    if raw is not None:
        return _coerce_exit_code(raw)
    success = body.get("success")
    if success is not None:
        return 0 if success else 1
    return 0


class ExecutionRouter:
    """Runs commands inside units and always answers with an ``ExecResult``.

    The direct path posts to the unit's public agent endpoint and pins the request with
    ``fly-force-instance-id`` so the edge proxy cannot hand it to a different machine.
    The gateway path resolves a workspace by name with admin credentials, then forwards
    the command with the caller's cached session token. Errors on either path come
    back as ``exit_code=1`` with the reason in ``stderr``.
    """

    def __init__(
        self,
        direct: DirectExecTransport,
        gateway: GatewayPort | None = None,
        tokens: SessionTokenCache | None = None,
        *,
        workdir_mode: GatewayWorkdirMode = "field",
        direct_timeout_seconds: float = 60.0,
        gateway_timeout_seconds: float = 60.0,
        health_timeout_seconds: float = 2.0,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._direct = direct
        self._gateway = gateway
        self._tokens = tokens
        self._workdir_mode = workdir_mode
        self._direct_timeout = direct_timeout_seconds
        self._gateway_timeout = gateway_timeout_seconds
        self._health_timeout = health_timeout_seconds
        self._clock = clock
        self._sleep = sleep

    async def exec_direct(
        self,
        endpoint: str,
        command: str,
        cwd: str = DEFAULT_WORKING_DIRECTORY,
        *,
        unit_id: str | None = None,
        timeout_ms: int | None = None,
        argv: Sequence[str] | None = None,
        silent: bool = False,
    ) -> ExecResult:
        try:
            request = ExecRequest(
                target=unit_id or endpoint,
                command=command,
                working_directory=cwd or DEFAULT_WORKING_DIRECTORY,
                argv=tuple(argv or ()),
                timeout_ms=timeout_ms,
                silent=silent,
            )
            timeout = request.timeout_ms / 1000 if request.timeout_ms else self._direct_timeout
            body = await self._direct.post_exec(
                endpoint,
                request.payload(),
                headers=sticky_headers(unit_id),
                timeout_seconds=timeout,
            )
            return ExecResult(
                exit_code=direct_exit_code(body),
                stdout=str(body.get("stdout") or ""),
                stderr=str(body.get("stderr") or ""),
            )
        except (WorkspaceFleetError, ValueError) as exc:
            return self._failure(exc, path="direct", target=unit_id or endpoint, silent=silent)

    async def exec_by_name(
        self,
        workspace_name: str,
        identity: str,
        command: str,
        cwd: str = DEFAULT_WORKING_DIRECTORY,
        *,
        owner_name: str | None = None,
        argv: Sequence[str] | None = None,
        silent: bool = False,
    ) -> ExecResult:
        if self._gateway is None or self._tokens is None:
            return self._failure(
                WorkspaceFleetError("gateway execution is not configured"),
                path="gateway",
                target=workspace_name,
                silent=silent,
            )
        try:
            request = ExecRequest(
                target=workspace_name,
                command=command,
                working_directory=cwd or DEFAULT_WORKING_DIRECTORY,
                argv=tuple(argv or ()),
                silent=silent,
            )
            workspace_id = await self._gateway.resolve_workspace_id(workspace_name, owner_name=owner_name)
            session_token = await self._tokens.get_token(identity)
            body = await self._gateway.forward_exec(
                workspace_id,
                self._gateway_payload(request),
                session_token=session_token,
                timeout_seconds=self._gateway_timeout,
            )
            return ExecResult(
                exit_code=gateway_exit_code(body),
                stdout=str(body.get("stdout") or ""),
                stderr=str(body.get("stderr") or ""),
            )
        except (WorkspaceFleetError, ValueError) as exc:
            return self._failure(exc, path="gateway", target=workspace_name, silent=silent)

    async def wait_for_agent(
        self,
        endpoint: str,
        *,
        unit_id: str | None = None,
        timeout_seconds: float = 30.0,
        interval_seconds: float = 1.0,
    ) -> bool:
        """Poll the agent health probe until it answers or ``timeout_seconds`` pass."""

        policy = PollPolicy(
            fast_interval=interval_seconds,
            slow_interval=interval_seconds,
            phase_boundary=timeout_seconds,
            deadline=timeout_seconds,
        )

        async def probe() -> bool:
            return await self._direct.get_health(
                endpoint,
                headers=sticky_headers(unit_id),
                timeout_seconds=self._health_timeout,
            )

        try:
            result = await poll_until(
                probe,
                policy=policy,
                is_success=bool,
                transient_errors=(WorkspaceFleetError,),
                clock=self._clock,
                sleep=self._sleep,
            )
        except PollDeadlineExceeded as exc:
            logger.warning(
                "agent did not become healthy",
                extra={"data": {"endpoint": endpoint, "unit_id": unit_id, "attempts": exc.attempts}},
            )
            return False
        logger.info(
            "agent healthy",
            extra={"data": {"endpoint": endpoint, "unit_id": unit_id, "elapsed_s": round(result.elapsed, 3)}},
        )
        return True

    def _gateway_payload(self, request: ExecRequest) -> dict[str, object]:
        if self._workdir_mode == "shell_prefix":
            return {"command": shell_prefixed_command(request)}
        return request.payload()

    def _failure(self, exc: Exception, *, path: str, target: str, silent: bool) -> ExecResult:
        if not silent:
            logger.warning(
                "command execution failed",
                extra={
                    "data": {
                        "path": path,
                        "target": target,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    }
                },
            )
        return ExecResult.failure(f"{AGENT_ERROR_PREFIX}{str(exc) or type(exc).__name__}")


__all__ = [
    "AGENT_ERROR_PREFIX",
    "STICKY_INSTANCE_HEADER",
    "ExecutionRouter",
    "direct_exit_code",
    "gateway_exit_code",
    "shell_prefixed_command",
    "sticky_headers",
]

"""Operator command line for inspecting and maintaining workspace units."""

from __future__ import annotations

import argparse
import asyncio
import json
from collections.abc import Callable, Sequence
from dataclasses import asdict, is_dataclass
from functools import partial
from typing import Any

from workspace_fleet.application.workspace_service import WorkspaceService
from workspace_fleet.domain.execution import DEFAULT_WORKING_DIRECTORY, ExecResult
from workspace_fleet.observability.logging import configure_logging, shutdown_logging
from workspace_fleet.observability.tracing import configure_tracing
from workspace_fleet.runtime.bootstrap import build_workspace_service
from workspace_fleet.runtime.settings import Settings

ServiceFactory = Callable[[], WorkspaceService]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workspace-fleet",
        description="Inspect and maintain per-project workspace units.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("list", help="List units in the workspace app.")
    commands.add_parser("health", help="Check that the control plane knows the workspace app.")
    commands.add_parser("init-app", help="Create the workspace app when it does not exist.")

    for name, help_text in (
        ("status", "Describe one unit."),
        ("stop", "Stop one unit."),
        ("destroy", "Destroy one unit (succeeds when already gone)."),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("unit_id", help="Machine identifier.")

    acquire = commands.add_parser("acquire", help="Reuse, start or create the unit for a project and wait.")
    acquire.add_argument("project_id")
    acquire.add_argument("--project-type", default=None, help="Selects the runtime image.")
    acquire.add_argument("--image", default=None, help="Explicit image reference.")
    acquire.add_argument("--singleton", action="store_true", help="Stop every other started unit afterwards.")

    single = commands.add_parser("ensure-single", help="Stop all started units except one.")
    single.add_argument("--app", default=None, help="App name (defaults to FLY_APP_NAME).")
    single.add_argument("--keep", default=None, help="Name of the unit to keep running.")

    run = commands.add_parser("exec", help="Run a command through a unit's agent endpoint.")
    run.add_argument("--endpoint", required=True, help="Public agent endpoint of the unit.")
    run.add_argument("--unit-id", default=None, help="Pins the request to this machine.")
    run.add_argument("--cwd", default=DEFAULT_WORKING_DIRECTORY)
    run.add_argument("--timeout-ms", type=int, default=None)
    run.add_argument("cmd", nargs=argparse.REMAINDER, help="Command to run (after --).")
    return parser


def _jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    return value


async def _dispatch(args: argparse.Namespace, service: WorkspaceService) -> Any:
    command = args.command
    if command == "list":
        return await service.list_workspaces()
    if command == "health":
        return await service.health_check()
    if command == "init-app":
        await service.initialize_app()
        return {"initialized": True}
    if command == "status":
        return await service.describe_workspace(args.unit_id)
    if command == "stop":
        await service.stop_workspace(args.unit_id)
        return {"stopped": args.unit_id}
    if command == "destroy":
        await service.destroy_workspace(args.unit_id)
        return {"destroyed": args.unit_id}
    if command == "acquire":
        return await service.acquire_workspace(
            args.project_id,
            image=args.image,
            project_type=args.project_type,
            enforce_singleton=args.singleton,
        )
    if command == "ensure-single":
        return await service.ensure_single_active_workspace(args.app, keep_name=args.keep)
    if command == "exec":
        words = args.cmd[1:] if args.cmd[:1] == ["--"] else list(args.cmd)
        if not words:
            raise ValueError("exec requires a command after --")
        return await service.exec_in_workspace(
            args.endpoint,
            " ".join(words),
            args.cwd,
            unit_id=args.unit_id,
            timeout_ms=args.timeout_ms,
        )
    raise ValueError(f"unknown command: {command}")


async def _run(args: argparse.Namespace, factory: ServiceFactory) -> Any:
    service = factory()
    try:
        return await _dispatch(args, service)
    finally:
        await service.aclose()


def main(argv: Sequence[str] | None = None, *, service_factory: ServiceFactory | None = None) -> None:
    args = _build_parser().parse_args(list(argv) if argv is not None else None)

    cloud_logging = False
    if service_factory is None:
        settings = Settings.load()
        cloud_logging = settings.observability.enable_cloud_logging
        configure_logging(
            root_default="WARNING",
            cloud_logging_enabled=cloud_logging,
            gcp_project=settings.observability.gcp_project_id,
        )
        configure_tracing()
        service_factory = partial(build_workspace_service, settings)

    try:
        result = asyncio.run(_run(args, service_factory))
    except KeyboardInterrupt:
        raise
    except Exception as exc:
        raise SystemExit(str(exc)) from exc
    finally:
        if cloud_logging:
            shutdown_logging()

    print(json.dumps(_jsonable(result), sort_keys=True, default=str))
    if isinstance(result, ExecResult) and not result.ok:
        raise SystemExit(result.exit_code)


__all__ = ["main"]

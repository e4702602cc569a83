"""Runtime wiring for the workspace service."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

import httpx

from workspace_fleet.application.execution_router import ExecutionRouter
from workspace_fleet.application.lifecycle import LifecycleManager
from workspace_fleet.application.readiness import ReadinessWaiter
from workspace_fleet.application.session_tokens import SessionTokenCache
from workspace_fleet.application.singleton import SingletonEnforcer
from workspace_fleet.application.workspace_service import WorkspaceService
from workspace_fleet.clients import DIRECT_EXEC, GATEWAY
from workspace_fleet.infrastructure.control_plane.client import HttpMachineControlClient
from workspace_fleet.infrastructure.gateway.client import HttpGatewayClient
from workspace_fleet.infrastructure.gateway.direct import HttpDirectExecTransport
from workspace_fleet.infrastructure.gateway.identity import HttpIdentityIssuer
from workspace_fleet.infrastructure.state.token_store import InMemoryTokenStore
from workspace_fleet.runtime.settings import Settings

logger = logging.getLogger("workspace_fleet.runtime")


@dataclass(frozen=True, slots=True)
class RuntimeContext:
    """Aggregated runtime components behind the workspace service."""

    settings: Settings
    control_plane: HttpMachineControlClient
    direct_transport: HttpDirectExecTransport
    gateway: HttpGatewayClient
    identity_issuer: HttpIdentityIssuer
    token_store: InMemoryTokenStore
    token_cache: SessionTokenCache
    lifecycle: LifecycleManager
    router: ExecutionRouter
    service: WorkspaceService


def build_runtime(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RuntimeContext:
    """Construct every collaborator explicitly; nothing is created at import time."""

    start = time.monotonic()
    resolved = settings or Settings.load()
    control_settings = resolved.control_plane
    gateway_settings = resolved.gateway
    readiness = resolved.readiness

    control_plane = HttpMachineControlClient(control_settings, transport=transport)
    direct_transport = HttpDirectExecTransport(transport=transport)
    gateway = HttpGatewayClient(
        api_url=gateway_settings.api_url,
        exec_url=gateway_settings.exec_url,
        admin_token=gateway_settings.admin_token_value,
        lookup_timeout_seconds=GATEWAY.lookup_timeout_seconds,
        transport=transport,
    )
    identity_issuer = HttpIdentityIssuer(
        api_url=gateway_settings.api_url,
        admin_token=gateway_settings.admin_token_value,
        transport=transport,
    )
    token_store = InMemoryTokenStore()
    token_cache = SessionTokenCache(
        identity_issuer,
        token_store,
        ttl_seconds=gateway_settings.token_cache_ttl_seconds,
        token_lifetime_seconds=gateway_settings.token_lifetime_seconds,
    )

    waiter = ReadinessWaiter(
        control_plane,
        fast_interval=readiness.fast_interval_seconds,
        slow_interval=readiness.slow_interval_seconds,
    )
    lifecycle = LifecycleManager(
        control_plane,
        waiter=waiter,
        singleton=SingletonEnforcer(control_plane),
        images=resolved.images,
        resume_settle_seconds=control_settings.resume_settle_seconds,
        sleep=asyncio.sleep,
    )
    router = ExecutionRouter(
        direct_transport,
        gateway,
        token_cache,
        workdir_mode=gateway_settings.workdir_mode,
        direct_timeout_seconds=DIRECT_EXEC.timeout_seconds,
        gateway_timeout_seconds=GATEWAY.exec_timeout_seconds,
        health_timeout_seconds=DIRECT_EXEC.health_timeout_seconds,
    )
    service = WorkspaceService(
        lifecycle,
        router,
        org_slug=control_settings.org_slug,
        initial_timeout_seconds=readiness.initial_timeout_seconds,
        max_timeout_seconds=readiness.max_timeout_seconds,
        closers=(
            control_plane.aclose,
            direct_transport.aclose,
            gateway.aclose,
            identity_issuer.aclose,
        ),
    )
    logger.info(
        "workspace runtime built",
        extra={
            "data": {
                "app": control_settings.app_name,
                "region": control_settings.region,
                "workdir_mode": gateway_settings.workdir_mode,
                "elapsed_s": round(time.monotonic() - start, 3),
            }
        },
    )
    return RuntimeContext(
        settings=resolved,
        control_plane=control_plane,
        direct_transport=direct_transport,
        gateway=gateway,
        identity_issuer=identity_issuer,
        token_store=token_store,
        token_cache=token_cache,
        lifecycle=lifecycle,
        router=router,
        service=service,
    )


def build_workspace_service(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> WorkspaceService:
    return build_runtime(settings, transport=transport).service


__all__ = ["RuntimeContext", "build_runtime", "build_workspace_service"]

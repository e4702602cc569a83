"""HTTP client adapter for the remote machine-control API."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Any

import httpx
from opentelemetry import trace
from opentelemetry.trace import SpanKind

from workspace_fleet.application.ports.control_plane import MachineControlPort
from workspace_fleet.config.control_plane import ControlPlaneSettings
from workspace_fleet.domain.compute_unit import (
    AppStatus,
    AppSuspension,
    ComputeUnit,
    CreateUnitOptions,
    derive_unit_name,
)
from workspace_fleet.errors import ControlPlaneError

_LOGGER = logging.getLogger("workspace_fleet.infrastructure.control_plane.calls")

AGENT_PORT_ENV = "DRAPE_AGENT_PORT"

_APP_STATUS_QUERY = """
query GetApp($name: String!) {
  app(name: $name) {
    id
    name
    status
  }
}
"""

_RESUME_APP_MUTATION = """
mutation ResumeApp($appId: ID!) {
  resumeApp(input: {appId: $appId}) {
    app {
      id
      status
    }
  }
}
"""


class HttpMachineControlClient(MachineControlPort):
    """Async client for machine CRUD (REST) and app suspension (GraphQL)."""

    def __init__(
        self,
        settings: ControlPlaneSettings,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        token = settings.api_token_value
        if not token:
            _LOGGER.warning("control plane token is not configured; requests will be unauthenticated")
        self._headers = {"Accept": "application/json"}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"
        self._owns_client = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(
            base_url=settings.api_url.rstrip("/"),
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    @property
    def app_name(self) -> str:
        return self._settings.app_name

    # Machines ---------------------------------------------------------------------------------

    async def create(
        self,
        project_id: str,
        options: CreateUnitOptions,
        *,
        app: str | None = None,
    ) -> ComputeUnit:
        app_name = app or self.app_name
        body = self.build_machine_request(project_id, options)
        data = await self._request("POST", f"/apps/{app_name}/machines", json_payload=body)
        return self._unit(data, app_name)

    async def get(self, unit_id: str, *, app: str | None = None) -> ComputeUnit | None:
        app_name = app or self.app_name
        data = await self._request("GET", f"/apps/{app_name}/machines/{unit_id}", allow_not_found=True)
        if data is None:
            return None
        return self._unit(data, app_name)

    async def start(self, unit_id: str, *, app: str | None = None) -> None:
        await self._request("POST", f"/apps/{app or self.app_name}/machines/{unit_id}/start")

    async def stop(self, unit_id: str, *, app: str | None = None) -> None:
        await self._request("POST", f"/apps/{app or self.app_name}/machines/{unit_id}/stop")

    async def destroy(self, unit_id: str, *, app: str | None = None) -> None:
        await self._request(
            "DELETE",
            f"/apps/{app or self.app_name}/machines/{unit_id}",
            params={"force": "true"},
            allow_not_found=True,
        )

    async def list(self, *, app: str | None = None) -> list[ComputeUnit]:
        app_name = app or self.app_name
        data = await self._request("GET", f"/apps/{app_name}/machines")
        if not isinstance(data, list):
            raise ControlPlaneError("control plane returned a non-list machine listing", payload=data)
        return [self._unit(item, app_name) for item in data if isinstance(item, Mapping)]

    # Apps -------------------------------------------------------------------------------------

    async def get_app(self, app_name: str) -> Mapping[str, Any] | None:
        return await self._request("GET", f"/apps/{app_name}", allow_not_found=True)

    async def create_app(self, app_name: str, *, org_slug: str) -> Mapping[str, Any]:
        data = await self._request("POST", "/apps", json_payload={"app_name": app_name, "org_slug": org_slug})
        return data if isinstance(data, Mapping) else {}

    async def app_status(self, app_name: str) -> AppStatus | None:
        data = await self._graphql(_APP_STATUS_QUERY, {"name": app_name})
        app = data.get("app")
        if not isinstance(app, Mapping) or not app.get("id"):
            return None
        raw_status = app.get("status")
        return AppStatus(
            id=str(app["id"]),
            name=str(app.get("name") or app_name),
            status=AppSuspension.parse(raw_status),
            raw_status=raw_status,
        )

    async def resume_app(self, app_id: str) -> None:
        await self._graphql(_RESUME_APP_MUTATION, {"appId": app_id})

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def build_machine_request(self, project_id: str, options: CreateUnitOptions) -> dict[str, Any]:
        """Return the create-machine body: guest sizing, env and the agent service ports."""

        if not options.image:
            raise ValueError("an image must be resolved before creating a unit")
        settings = self._settings
        port = settings.agent_port
        env = {"PROJECT_ID": project_id, AGENT_PORT_ENV: str(port)}
        env.update(options.env)
        return {
            "name": derive_unit_name(project_id),
            "region": settings.region,
            "config": {
                "image": options.image,
                "guest": {
                    "cpus": settings.guest_cpus,
                    "cpu_kind": settings.guest_cpu_kind,
                    "memory_mb": options.memory_mb or settings.guest_memory_mb,
                },
                "auto_destroy": True,
                "restart": {"policy": "no"},
                "env": env,
                "services": [
                    {
                        "protocol": "tcp",
                        "internal_port": port,
                        "ports": [
                            {"port": 443, "handlers": ["tls", "http"]},
                            {"port": 80, "handlers": ["http"]},
                        ],
                    }
                ],
            },
        }

    # ------------------------------------------------------------------
    # internal

    def _unit(self, payload: Any, app_name: str) -> ComputeUnit:
        if not isinstance(payload, Mapping):
            raise ControlPlaneError("control plane returned a non-object machine payload", payload=payload)
        try:
            return ComputeUnit.from_payload(payload, public_endpoint=self._settings.public_endpoint(app_name))
        except ValueError as exc:
            raise ControlPlaneError(str(exc), payload=dict(payload)) from exc

    async def _graphql(self, query: str, variables: Mapping[str, Any]) -> Mapping[str, Any]:
        body = await self._request(
            "POST",
            self._settings.graphql_url,
            json_payload={"query": query, "variables": dict(variables)},
        )
        if not isinstance(body, Mapping):
            raise ControlPlaneError("graphql endpoint returned a non-object body", payload=body)
        errors = body.get("errors")
        if errors:
            raise ControlPlaneError(f"graphql request failed: {_first_error_message(errors)}", payload=errors)
        data = body.get("data")
        return data if isinstance(data, Mapping) else {}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_payload: Mapping[str, Any] | None = None,
        params: Mapping[str, str] | None = None,
        allow_not_found: bool = False,
    ) -> Any:
        tracer = trace.get_tracer("workspace_fleet.control_plane")
        with tracer.start_as_current_span(
            "control_plane.request",
            kind=SpanKind.CLIENT,
            attributes={
                "http.method": method,
                "http.target": path,
            },
        ) as span:
            start = time.perf_counter()
            try:
                response = await self._client.request(
                    method,
                    path,
                    json=dict(json_payload) if json_payload is not None else None,
                    params=dict(params) if params else None,
                    headers=self._headers,
                )
            except httpx.HTTPError as exc:
                span.set_attributes({"control_plane.error": type(exc).__name__})
                raise ControlPlaneError(f"{method} {path} failed: {str(exc) or type(exc).__name__}") from exc

            latency_ms = round((time.perf_counter() - start) * 1000, 2)
            status = response.status_code
            span.set_attributes({"http.status_code": status})
            _LOGGER.debug(
                "control_plane.request.complete",
                extra={"data": {"method": method, "path": path, "status_code": status, "latency_ms": latency_ms}},
            )

            if status == httpx.codes.NOT_FOUND and allow_not_found:
                return None
            if status >= 400:
                payload = _decode(response)
                raise ControlPlaneError(
                    f"control plane returned {status} for {method} {path}",
                    status=status,
                    payload=payload,
                )
            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as exc:
                raise ControlPlaneError(
                    f"control plane returned invalid JSON for {method} {path}",
                    status=status,
                ) from exc


def _decode(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _first_error_message(errors: Any) -> str:
    if isinstance(errors, list) and errors and isinstance(errors[0], Mapping):
        return str(errors[0].get("message") or errors[0])
    return str(errors)


__all__ = ["AGENT_PORT_ENV", "HttpMachineControlClient"]

from __future__ import annotations

import json

import httpx
import pytest

from workspace_fleet.config.control_plane import ControlPlaneSettings
from workspace_fleet.domain.compute_unit import CreateUnitOptions, UnitState
from workspace_fleet.errors import ControlPlaneError
from workspace_fleet.infrastructure.control_plane.client import HttpMachineControlClient

pytestmark = pytest.mark.anyio("asyncio")

API = "https://machines.example/v1"
GRAPHQL = "https://graphql.example/graphql"


def _settings(**overrides: object) -> ControlPlaneSettings:
    values: dict[str, object] = {
        "FLY_API_URL": API,
        "FLY_GRAPHQL_URL": GRAPHQL,
        "FLY_API_TOKEN": "fly-token",
        "FLY_APP_NAME": "workspaces",
        "FLY_REGION": "fra",
    }
    values.update(overrides)
    return ControlPlaneSettings(**values)


def _client(handler, **overrides: object) -> HttpMachineControlClient:
    return HttpMachineControlClient(_settings(**overrides), transport=httpx.MockTransport(handler))


def _machine(unit_id: str = "m1", state: str = "started") -> dict[str, object]:
    return {"id": unit_id, "name": "ws-proj", "state": state, "region": "fra", "private_ip": "fdaa::1"}


async def test_get_returns_none_on_404() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/apps/workspaces/machines/missing"
        return httpx.Response(404, json={"error": "not found"})

    client = _client(handler)
    try:
        assert await client.get("missing") is None
    finally:
        await client.aclose()


async def test_get_parses_machine_and_sends_bearer_token() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer fly-token"
        return httpx.Response(200, json=_machine())

    client = _client(handler)
    try:
        unit = await client.get("m1")
    finally:
        await client.aclose()

    assert unit is not None
    assert unit.state is UnitState.STARTED
    assert unit.private_address == "fdaa::1"
    assert unit.public_endpoint == "https://workspaces.fly.dev"


async def test_destroy_is_forced_and_idempotent() -> None:
    seen: list[httpx.Request] = []
    statuses = iter([200, 404])

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(next(statuses), json={})

    client = _client(handler)
    try:
        await client.destroy("m1")
        await client.destroy("m1")
    finally:
        await client.aclose()

    assert [request.method for request in seen] == ["DELETE", "DELETE"]
    assert seen[0].url.params["force"] == "true"


async def test_error_status_raises_control_plane_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"error": "invalid image"})

    client = _client(handler)
    try:
        with pytest.raises(ControlPlaneError) as excinfo:
            await client.start("m1")
    finally:
        await client.aclose()

    assert excinfo.value.status == 422
    assert excinfo.value.payload == {"error": "invalid image"}


async def test_transport_errors_are_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    try:
        with pytest.raises(ControlPlaneError) as excinfo:
            await client.list()
    finally:
        await client.aclose()

    assert excinfo.value.status is None


async def test_create_posts_machine_config() -> None:
    bodies: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/v1/apps/workspaces/machines"
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json=_machine(state="created"))

    client = _client(handler)
    try:
        unit = await client.create(
            "proj",
            CreateUnitOptions(image="img:universal", memory_mb=4096, env={"FOO": "bar"}),
        )
    finally:
        await client.aclose()

    body = bodies[0]
    config = body["config"]
    assert body["name"] == "ws-proj"
    assert body["region"] == "fra"
    assert config["image"] == "img:universal"
    assert config["guest"] == {"cpus": 2, "cpu_kind": "shared", "memory_mb": 4096}
    assert config["auto_destroy"] is True
    assert config["restart"] == {"policy": "no"}
    assert config["env"] == {"PROJECT_ID": "proj", "DRAPE_AGENT_PORT": "13338", "FOO": "bar"}
    assert config["services"][0]["internal_port"] == 13338
    assert {port["port"] for port in config["services"][0]["ports"]} == {80, 443}
    assert unit.state is UnitState.CREATED


async def test_create_requires_resolved_image() -> None:
    client = _client(lambda request: httpx.Response(500))
    try:
        with pytest.raises(ValueError):
            await client.create("proj", CreateUnitOptions())
    finally:
        await client.aclose()


async def test_list_honours_app_override() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/apps/other/machines"
        return httpx.Response(200, json=[_machine("a"), _machine("b", state="stopped")])

    client = _client(handler)
    try:
        units = await client.list(app="other")
    finally:
        await client.aclose()

    assert [unit.id for unit in units] == ["a", "b"]
    assert units[0].public_endpoint == "https://other.fly.dev"


async def test_app_status_and_resume_use_graphql() -> None:
    requests: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == GRAPHQL
        body = json.loads(request.content)
        requests.append(body)
        if "ResumeApp" in body["query"]:
            return httpx.Response(200, json={"data": {"resumeApp": {"app": {"id": "app-1", "status": "deployed"}}}})
        return httpx.Response(200, json={"data": {"app": {"id": "app-1", "name": "workspaces", "status": "suspended"}}})

    client = _client(handler)
    try:
        status = await client.app_status("workspaces")
        assert status is not None and status.is_suspended
        await client.resume_app(status.id)
    finally:
        await client.aclose()

    assert requests[0]["variables"] == {"name": "workspaces"}
    assert requests[1]["variables"] == {"appId": "app-1"}


async def test_graphql_errors_raise() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"errors": [{"message": "unauthorized"}]})

    client = _client(handler)
    try:
        with pytest.raises(ControlPlaneError, match="unauthorized"):
            await client.app_status("workspaces")
    finally:
        await client.aclose()


async def test_get_app_and_create_app() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(404)
        assert request.url.path == "/v1/apps"
        assert json.loads(request.content) == {"app_name": "workspaces", "org_slug": "acme"}
        return httpx.Response(201, json={"id": "app-1", "name": "workspaces"})

    client = _client(handler)
    try:
        assert await client.get_app("workspaces") is None
        created = await client.create_app("workspaces", org_slug="acme")
    finally:
        await client.aclose()

    assert created["id"] == "app-1"


async def test_missing_token_logs_warning(caplog: pytest.LogCaptureFixture) -> None:
    client = _client(lambda request: httpx.Response(200, json=[]), FLY_API_TOKEN="")
    try:
        assert await client.list() == []
    finally:
        await client.aclose()

    assert any("token is not configured" in record.getMessage() for record in caplog.records)

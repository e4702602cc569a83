from __future__ import annotations

import pytest


@pytest.fixture
def anyio_backend() -> str:
    # Force AnyIO-managed tests to run on asyncio only
    return "asyncio"


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    # Settings read `.env` from the working directory; keep tests hermetic.
    monkeypatch.chdir(tmp_path)
    for name in (
        "FLY_API_TOKEN",
        "FLY_APP_NAME",
        "WORKSPACE_IMAGE_OVERRIDE",
        "GATEWAY_WORKDIR_MODE",
        "K_SERVICE",
        "KUBERNETES_SERVICE_HOST",
    ):
        monkeypatch.delenv(name, raising=False)

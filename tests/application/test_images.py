from __future__ import annotations

import pytest

from workspace_fleet.application.images import select_image
from workspace_fleet.config.images import RuntimeImageSettings


@pytest.fixture
def images() -> RuntimeImageSettings:
    return RuntimeImageSettings(WORKSPACE_IMAGE_LIGHTWEIGHT="img:light", WORKSPACE_IMAGE_UNIVERSAL="img:universal")


@pytest.mark.parametrize("project_type", ["react", "nextjs", "Vite", " node "])
def test_js_web_frameworks_use_the_lightweight_image(images: RuntimeImageSettings, project_type: str) -> None:
    assert select_image(project_type, images) == "img:light"


@pytest.mark.parametrize("project_type", ["rust", "python", "", None])
def test_other_project_types_use_the_universal_image(images: RuntimeImageSettings, project_type: str | None) -> None:
    assert select_image(project_type, images) == "img:universal"

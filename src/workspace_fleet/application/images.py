"""Runtime image selection policy."""

from __future__ import annotations

from typing import Final

from workspace_fleet.config.images import RuntimeImageSettings

# Project types served by the lightweight, pre-warmed Node.js image.
JS_WEB_FRAMEWORK_TYPES: Final[frozenset[str]] = frozenset(
    {
        "node",
        "nodejs",
        "nextjs",
        "react",
        "vue",
        "vite",
        "svelte",
        "angular",
        "nuxt",
        "remix",
        "astro",
    }
)


def select_image(project_type: str | None, images: RuntimeImageSettings) -> str:
    """Return the image reference for ``project_type``; unknown types get the universal image."""

    normalized = (project_type or "").strip().lower()
    if normalized in JS_WEB_FRAMEWORK_TYPES:
        return images.lightweight
    return images.universal


__all__ = ["JS_WEB_FRAMEWORK_TYPES", "select_image"]

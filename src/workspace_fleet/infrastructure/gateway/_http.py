"""Response decoding shared by the exec adapters."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from workspace_fleet.errors import ExecTransportError


def error_message(response: httpx.Response) -> str:
    """Prefer the ``error`` field of a JSON error body, else a snippet of the text."""

    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, Mapping) and body.get("error"):
        return str(body["error"])
    text = response.text.strip()
    return text[:200] if text else f"HTTP {response.status_code}"


def json_object(response: httpx.Response, *, source: str) -> Mapping[str, Any]:
    if response.status_code >= 400:
        raise ExecTransportError(
            f"{source} returned {response.status_code}: {error_message(response)}",
            status=response.status_code,
        )
    try:
        body = response.json()
    except ValueError as exc:
        raise ExecTransportError(f"{source} returned invalid JSON", status=response.status_code) from exc
    if not isinstance(body, Mapping):
        raise ExecTransportError(f"{source} returned a non-object body", status=response.status_code)
    return body


__all__ = ["error_message", "json_object"]

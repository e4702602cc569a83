"""Logging setup: console formatter with structured extras plus optional Cloud Logging."""

from __future__ import annotations

import json
import logging
import os
import time
import traceback
from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from enum import Enum
from logging.config import dictConfig
from typing import Any

from google.cloud import logging as gcp_logging
from opentelemetry import baggage, trace

_SELF_LOGGER = "workspace_fleet.observability.logging"
CONTROL_PLANE_CALLS_LOGGER = "workspace_fleet.infrastructure.control_plane.calls"
CLOUD_LOG_NAME = "workspace-fleet"


def _level(env_var: str, default: str) -> str:
    return os.getenv(env_var, default).upper()


def _should_emit_json_payload() -> bool:
    # Cloud Run and Kubernetes parse one JSON object per line into a structured entry.
    return bool(os.getenv("K_SERVICE") or os.getenv("KUBERNETES_SERVICE_HOST"))


def _timestamp(record: logging.LogRecord) -> str:
    return f"{time.strftime('%Y-%m-%dT%H:%M:%S', time.gmtime(record.created))}.{int(record.msecs):03d}Z"


def _structured_payload(record: logging.LogRecord) -> dict[str, Any]:
    data = record.__dict__.get("data")
    payload: dict[str, Any] = {
        "message": record.getMessage(),
        "severity": record.levelname,
        "logger": record.name,
        "timestamp": _timestamp(record),
    }
    if data:
        payload["data"] = _sanitize_for_json(data)
    if record.exc_info:
        payload["exception"] = "".join(traceback.format_exception(*record.exc_info)).rstrip("\n")
    json_fields = record.__dict__.get("json_fields")
    if isinstance(json_fields, Mapping):
        for key, value in _sanitize_for_json(json_fields).items():
            payload.setdefault(key, value)
    return payload


class ExtrasFormatter(logging.Formatter):
    """Append the ``data`` extra to each line, or emit JSON lines in managed runtimes."""

    def format(self, record: logging.LogRecord) -> str:
        if _should_emit_json_payload():
            return json.dumps(_structured_payload(record), sort_keys=True, separators=(",", ":"))

        formatted = super().format(record)
        data = record.__dict__.get("data")
        if not data:
            return formatted
        encoded = json.dumps(_sanitize_for_json(data), sort_keys=True, separators=(",", ":"))
        return f"{formatted} | data={encoded}"


class CloudJsonSanitizer(logging.Filter):
    """Copy ``data`` into ``json_fields`` in a form Cloud Logging can serialize."""

    def filter(self, record: logging.LogRecord) -> bool:
        record_dict = record.__dict__
        json_fields = record_dict.get("json_fields")
        fields = dict(json_fields) if isinstance(json_fields, Mapping) else {}
        if "data" in record_dict:
            sanitized = _sanitize_for_json(record_dict["data"])
            record_dict["data"] = sanitized
            fields.setdefault("data", sanitized)
        if fields:
            record_dict["json_fields"] = _sanitize_for_json(fields)
        return True


class OtelContextLogFilter(logging.Filter):
    """Attach the active trace/span ids and baggage to ``json_fields``."""

    def __init__(self, *, gcp_project_id: str | None = None) -> None:
        super().__init__()
        self._gcp_project_id = gcp_project_id.strip() if gcp_project_id else None

    def filter(self, record: logging.LogRecord) -> bool:
        otel: dict[str, Any] = {}
        fields: dict[str, Any] = {}

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            trace_id = f"{span_context.trace_id:032x}"
            span_id = f"{span_context.span_id:016x}"
            otel["trace_id"] = trace_id
            otel["span_id"] = span_id
            if self._gcp_project_id:
                fields["logging.googleapis.com/trace"] = f"projects/{self._gcp_project_id}/traces/{trace_id}"
                fields["logging.googleapis.com/spanId"] = span_id

        baggage_values = baggage.get_all()
        if baggage_values:
            otel["baggage"] = {key: str(value) for key, value in baggage_values.items()}

        if not otel:
            return True

        existing = record.__dict__.get("json_fields")
        merged = dict(existing) if isinstance(existing, Mapping) else {}
        for key, value in fields.items():
            merged.setdefault(key, value)
        merged["otel"] = otel
        record.__dict__["json_fields"] = merged
        return True


def build_log_config(
    *,
    root_default: str = "INFO",
    cloud_logging_enabled: bool = False,
    gcp_project: str | None = None,
) -> dict[str, Any]:
    """Return a dictConfig-compatible logging configuration.

    ``LOG_LEVEL`` overrides ``root_default``. The HTTP client loggers stay at WARNING
    unless ``HTTPX_LOG_LEVEL`` says otherwise.
    """

    handlers: dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "console",
            "stream": "ext://sys.stdout",
            "filters": ["otel_context"],
        }
    }
    if cloud_logging_enabled:
        if not gcp_project:
            raise RuntimeError("GCP project required when cloud logging is enabled")
        handlers["cloud_logging"] = _cloud_logging_handler(gcp_project)

    handler_names = list(handlers)
    loggers = {
        name: {"level": level, "handlers": list(handler_names), "propagate": False}
        for name, level in (
            ("httpx", _level("HTTPX_LOG_LEVEL", "WARNING")),
            ("httpcore", _level("HTTPX_LOG_LEVEL", "WARNING")),
            (CONTROL_PLANE_CALLS_LOGGER, _level("CONTROL_PLANE_LOG_LEVEL", "INFO")),
        )
    }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "()": ExtrasFormatter,
                "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            }
        },
        "filters": {
            "otel_context": {"()": OtelContextLogFilter, "gcp_project_id": gcp_project},
            "cloud_json_sanitizer": {"()": CloudJsonSanitizer},
        },
        "handlers": handlers,
        "root": {"level": _level("LOG_LEVEL", root_default), "handlers": handler_names},
        "loggers": loggers,
    }


def _cloud_logging_handler(project: str) -> dict[str, Any]:
    from google.cloud.logging_v2.resource import Resource

    client: gcp_logging.Client = gcp_logging.Client(project=project)  # type: ignore[no-untyped-call]
    return {
        "level": "INFO",
        "class": "google.cloud.logging_v2.handlers.handlers.CloudLoggingHandler",
        "client": client,
        "name": CLOUD_LOG_NAME,
        "resource": Resource("global", {"project_id": project}),
        "formatter": "console",
        "filters": ["otel_context", "cloud_json_sanitizer"],
    }


def _sanitize_for_json(value: Any, depth: int = 8, max_items: int = 200) -> Any:
    """Return a JSON-serializable copy; unknown objects become strings."""

    if depth <= 0:
        return "<depth_exceeded>"
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes len={len(value)}>"
    if is_dataclass(value) and not isinstance(value, type):
        return _sanitize_for_json(asdict(value), depth - 1, max_items)
    if isinstance(value, Mapping):
        items = list(value.items())
        result = {str(key): _sanitize_for_json(item, depth - 1, max_items) for key, item in items[:max_items]}
        if len(items) > max_items:
            result["<truncated>"] = f"...{len(items) - max_items} more"
        return result
    if isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
        out = [_sanitize_for_json(item, depth - 1, max_items) for item in items[:max_items]]
        if len(items) > max_items:
            out.append(f"... {len(items) - max_items} more")
        return out
    return str(value)


def shutdown_logging() -> None:
    """Flush and close Cloud Logging handlers attached to the root logger."""

    from google.cloud.logging_v2.handlers.handlers import CloudLoggingHandler

    for handler in list(logging.getLogger().handlers):
        if isinstance(handler, CloudLoggingHandler):
            handler.flush()
            handler.close()


def configure_logging(
    *,
    root_default: str = "INFO",
    cloud_logging_enabled: bool = False,
    gcp_project: str | None = None,
) -> None:
    dictConfig(
        build_log_config(
            root_default=root_default,
            cloud_logging_enabled=cloud_logging_enabled,
            gcp_project=gcp_project,
        )
    )
    logging.getLogger(_SELF_LOGGER).debug(
        "configured logging",
        extra={"data": {"cloud_logging_enabled": cloud_logging_enabled, "gcp_project": gcp_project}},
    )


__all__ = [
    "CLOUD_LOG_NAME",
    "CONTROL_PLANE_CALLS_LOGGER",
    "CloudJsonSanitizer",
    "ExtrasFormatter",
    "OtelContextLogFilter",
    "build_log_config",
    "configure_logging",
    "shutdown_logging",
]

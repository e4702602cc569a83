"""OpenTelemetry tracing bootstrap."""

from __future__ import annotations

import os

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

_TRACING_CONFIGURED = False


def configure_tracing(*, service_name: str = "workspace-fleet") -> bool:
    """Install an OTLP exporter when an endpoint is configured; returns whether one was installed.

    Without ``OTEL_EXPORTER_OTLP_ENDPOINT`` (or the traces-specific variant) spans stay
    on the no-op provider. ``OTEL_TRACES_EXPORTER=none`` disables export explicitly.
    """

    global _TRACING_CONFIGURED
    if _TRACING_CONFIGURED:
        return False

    exporter_name = (os.getenv("OTEL_TRACES_EXPORTER") or "").strip().lower()
    endpoint = os.getenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT") or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if exporter_name == "none" or not endpoint:
        if exporter_name and exporter_name != "none" and not endpoint:
            raise RuntimeError(
                "Tracing enabled but OTLP endpoint missing: set OTEL_EXPORTER_OTLP_ENDPOINT "
                "or set OTEL_TRACES_EXPORTER=none."
            )
        _TRACING_CONFIGURED = True
        return False

    resolved_service_name = (os.getenv("OTEL_SERVICE_NAME") or service_name).strip()
    if not resolved_service_name:
        raise RuntimeError("service_name must be a non-empty string")

    provider = TracerProvider(resource=Resource.create({"service.name": resolved_service_name}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))
    trace.set_tracer_provider(provider)
    _TRACING_CONFIGURED = True
    return True


__all__ = ["configure_tracing"]

"""OpenTelemetry bootstrap for the reputation client."""

from __future__ import annotations

import os

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

_exporting: bool | None = None


def _otlp_endpoint() -> str | None:
    endpoint = os.getenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT") or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    return endpoint.strip() if endpoint and endpoint.strip() else None


def configure_tracing(*, service_name: str) -> bool:
    """Install an OTLP span exporter when an endpoint is configured.

    Returns whether spans are exported. Ledger calls are always wrapped in
    spans; without an exporter they go to the no-op provider. Setting
    ``OTEL_TRACES_EXPORTER`` without an endpoint is a configuration error.
    """

    global _exporting
    if _exporting is not None:
        return _exporting

    requested = (os.getenv("OTEL_TRACES_EXPORTER") or "").strip().lower()
    endpoint = _otlp_endpoint()
    if requested == "none" or (endpoint is None and not requested):
        _exporting = False
        return _exporting
    if endpoint is None:
        raise RuntimeError(
            f"OTEL_TRACES_EXPORTER={requested} needs OTEL_EXPORTER_OTLP_ENDPOINT "
            "(or OTEL_EXPORTER_OTLP_TRACES_ENDPOINT); set OTEL_TRACES_EXPORTER=none to disable"
        )

    name = service_name.strip()
    if not name:
        raise RuntimeError("service_name must be a non-empty string")

    provider = TracerProvider(resource=Resource.create({"service.name": name}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))
    trace.set_tracer_provider(provider)
    _exporting = True
    return _exporting


__all__ = ["configure_tracing"]

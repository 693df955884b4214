"""OpenTelemetry instrumentation for the Playwright API.

Tracing is opt-in: with ``OTEL_ENABLED=true`` and an OTLP endpoint, request
spans are exported over gRPC. The ASGI app is instrumented through the
Starlette instrumentor, which covers FastAPI.
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


def _enabled() -> bool:
    return os.getenv("OTEL_ENABLED", "false").lower() == "true"


def init_telemetry(app=None) -> bool:
    """Initialize OpenTelemetry tracing if enabled. Returns True when active."""
    if not _enabled():
        logger.debug("OpenTelemetry tracing disabled (OTEL_ENABLED=false)")
        return False

    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "")
    if not endpoint:
        logger.warning(
            "OTEL_ENABLED=true but OTEL_EXPORTER_OTLP_ENDPOINT not set. "
            "Skipping OpenTelemetry initialization."
        )
        return False

    try:
        from opentelemetry import trace
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )
        from opentelemetry.instrumentation.starlette import StarletteInstrumentor
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as e:
        logger.error(
            f"OpenTelemetry packages not installed: {e}. "
            "Install with: pip install 'playwright-api[telemetry]'"
        )
        return False

    service_name = os.getenv("OTEL_SERVICE_NAME", "playwright-api")
    try:
        resource = Resource.create(
            {
                "service.name": service_name,
                "deployment.environment": os.getenv("ENVIRONMENT", "development"),
                "service.version": os.getenv("APP_VERSION", "unknown"),
            }
        )
        provider = TracerProvider(resource=resource)
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True)))
        trace.set_tracer_provider(provider)

        if app is not None:
            StarletteInstrumentor.instrument_app(app)
        logger.info(f"OpenTelemetry initialized: service={service_name}, endpoint={endpoint}")
        return True
    except Exception as e:
        logger.error(f"Failed to initialize OpenTelemetry: {e}")
        return False


def shutdown_telemetry() -> None:
    """Shutdown OpenTelemetry tracer provider gracefully."""
    if not _enabled():
        return

    try:
        from opentelemetry import trace

        provider = trace.get_tracer_provider()
        if hasattr(provider, "shutdown"):
            provider.shutdown()
            logger.info("OpenTelemetry tracer provider shut down")
    except Exception as e:
        logger.warning(f"Error shutting down OpenTelemetry: {e}")

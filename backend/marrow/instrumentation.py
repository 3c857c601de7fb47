"""
OpenTelemetry instrumentation for rule resolution and field extraction.

Spans are always created through the OpenTelemetry API; they are only
exported once setup_tracing() installs a provider with an OTLP exporter.
"""
import os
from typing import Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from marrow.configs.app_configs import ENABLE_TRACING, OTEL_EXPORTER_OTLP_ENDPOINT
from marrow.utils.logger import setup_logger

logger = setup_logger()

TRACER_NAME = "marrow.extraction"


def setup_tracing(
    service_name: str = "marrow",
    service_version: str = "0.1.0",
    environment: str = "production",
    otlp_endpoint: Optional[str] = None,
    enable_tracing: bool = True,
) -> bool:
    """
    Install a tracer provider exporting spans over OTLP/gRPC.

    Args:
        service_name: Name of the service for tracing
        service_version: Version of the service
        environment: Environment (development, staging, production)
        otlp_endpoint: OTLP exporter endpoint (e.g., 'localhost:4317')
        enable_tracing: Whether to enable tracing

    Returns:
        True when a provider was installed
    """
    if not enable_tracing:
        logger.info("Extraction tracing is disabled")
        return False

    if not otlp_endpoint:
        logger.info(
            "No OTLP endpoint specified. Spans will use the no-op tracer. "
            "Set OTEL_EXPORTER_OTLP_ENDPOINT to enable export."
        )
        return False

    try:
        resource = Resource.create({
            "service.name": service_name,
            "service.version": service_version,
            "environment": environment,
        })
        provider = TracerProvider(resource=resource)
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )
        trace.set_tracer_provider(provider)

        logger.info(
            f"Extraction tracing enabled. Exporting traces to {otlp_endpoint}. "
            f"Service: {service_name} v{service_version} ({environment})"
        )
        return True
    except Exception as e:
        logger.error(f"Failed to set up extraction tracing: {e}")
        return False


def get_tracer(name: str = TRACER_NAME) -> trace.Tracer:
    """
    Get a tracer instance for manual instrumentation.

    Args:
        name: Name of the tracer (typically module name)

    Returns:
        OpenTelemetry tracer instance
    """
    return trace.get_tracer(name)


OTEL_SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "marrow")
OTEL_ENVIRONMENT = os.getenv("OTEL_ENVIRONMENT", "production")

if ENABLE_TRACING:
    setup_tracing(
        service_name=OTEL_SERVICE_NAME,
        environment=OTEL_ENVIRONMENT,
        otlp_endpoint=OTEL_EXPORTER_OTLP_ENDPOINT,
    )

"""OpenTelemetry tracing configuration for the GPU collector."""

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from gpu_collector import __version__
from gpu_collector.infrastructure.config import Config

TRACER_NAME = "gpu_collector"


def setup_tracing(config: Config) -> trace.Tracer:
    """Install a tracer provider that exports spans to the configured OTLP endpoint.

    Without an endpoint the provider records spans but exports nothing.
    """
    resource = Resource.create(
        {
            "service.name": TRACER_NAME,
            "service.version": __version__,
            "deployment.environment": config.observability.environment,
        }
    )

    provider = TracerProvider(resource=resource)
    if config.observability.otel_endpoint:
        exporter = OTLPSpanExporter(endpoint=config.observability.otel_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(provider)
    return get_tracer()


def get_tracer() -> trace.Tracer:
    """Get the collector's tracer from the global provider."""
    return trace.get_tracer(TRACER_NAME)

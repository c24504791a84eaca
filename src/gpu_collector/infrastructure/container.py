"""Dependency injection container for the GPU collector."""

from dataclasses import dataclass
from typing import ClassVar

import structlog
from opentelemetry import trace

from gpu_collector import __version__
from gpu_collector.application.collector_session import CollectorSession
from gpu_collector.infrastructure.config import Config, get_config
from gpu_collector.infrastructure.logging import setup_logging
from gpu_collector.infrastructure.metrics import MetricsRegistry, get_metrics, setup_metrics
from gpu_collector.infrastructure.tracing import setup_tracing
from gpu_collector.ports.outbound import TelemetryBackendPort


@dataclass
class Container:
    """Dependency injection container for collector components.

    The telemetry backend is not held here: it is passed explicitly to
    each session so no component reaches for a shared client.
    """

    config: Config
    logger: structlog.stdlib.BoundLogger
    tracer: trace.Tracer
    metrics: MetricsRegistry

    _instance: ClassVar["Container | None"] = None

    @classmethod
    def create(cls) -> "Container":
        """Create and initialize the container with all dependencies."""
        if cls._instance is not None:
            return cls._instance

        config = get_config()
        logger = setup_logging(config.observability.log_level, config.observability.log_format)
        tracer = setup_tracing(config)
        if config.observability.metrics_port is None:
            metrics = get_metrics()
        else:
            metrics = setup_metrics(config.observability.metrics_port)
        metrics.info.info({
            "version": __version__,
            "entity_group": config.collector.entity_group,
            "environment": config.observability.environment,
        })

        cls._instance = cls(
            config=config,
            logger=logger,
            tracer=tracer,
            metrics=metrics,
        )

        logger.info(
            "gpu_collector_container_initialized",
            environment=config.observability.environment,
            entity_group=config.collector.entity_group,
        )

        return cls._instance

    @classmethod
    def get(cls) -> "Container":
        """Get the singleton container instance."""
        if cls._instance is None:
            return cls.create()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the container (useful for testing)."""
        cls._instance = None

    def create_session(self, backend: TelemetryBackendPort) -> CollectorSession:
        """Wire a collector session around an explicitly supplied backend."""
        return CollectorSession(backend, self.config, metrics=self.metrics, tracer=self.tracer)


def get_container() -> Container:
    """Get the dependency injection container."""
    return Container.get()

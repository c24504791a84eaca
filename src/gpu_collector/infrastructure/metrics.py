"""Prometheus metrics for the collector's topology and watch setup."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Info, start_http_server, REGISTRY, CollectorRegistry


class MetricsRegistry:
    """Collector self-metrics.

    Implements ProvisioningMetricsPort for the watch provisioner.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or REGISTRY

        self.topology_entities = Gauge("collector_topology_entities", "Entities discovered in the topology", ["entity_group"], registry=self.registry)
        self.monitored_entities = Gauge("collector_monitored_entities", "Entities resolved for monitoring", ["entity_group"], registry=self.registry)
        self.topology_build_seconds = Histogram("collector_topology_build_seconds", "Topology build latency", buckets=(0.01, 0.05, 0.1, 0.5, 1, 5, 10), registry=self.registry)

        self.watch_groups_created_total = Counter("collector_watch_groups_created_total", "Entity groups created", registry=self.registry)
        self.field_watches_total = Counter("collector_field_watches_total", "Field watches registered", registry=self.registry)
        self.provisioning_failures_total = Counter("collector_provisioning_failures_total", "Watch provisioning failures", ["stage"], registry=self.registry)
        self.cleanup_failures_total = Counter("collector_cleanup_failures_total", "Failed backend resource releases", ["resource"], registry=self.registry)

        self.info = Info("gpu_collector", "Collector info", registry=self.registry)

    def group_created(self) -> None:
        self.watch_groups_created_total.inc()

    def field_watch_created(self) -> None:
        self.field_watches_total.inc()

    def provisioning_failed(self, stage: str) -> None:
        self.provisioning_failures_total.labels(stage=stage).inc()

    def cleanup_failed(self, resource: str) -> None:
        self.cleanup_failures_total.labels(resource=resource).inc()


_metrics: MetricsRegistry | None = None


def setup_metrics(port: int, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """Serve the collector metrics over HTTP on ``port``."""
    metrics = get_metrics(registry)
    start_http_server(port, registry=metrics.registry)
    return metrics


def get_metrics(registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """Get the process-wide metrics, creating them on first use.

    Passing ``registry`` replaces the cached metrics with ones bound to it.
    """
    global _metrics
    if _metrics is None or registry is not None:
        _metrics = MetricsRegistry(registry)
    return _metrics

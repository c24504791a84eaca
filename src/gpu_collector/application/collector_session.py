"""Collector session.

Runs the one-shot pipeline of a monitoring session: build the topology
for the configured entity class, resolve monitoring targets, then create
backend groups and field watches. The cleanup actions returned by the
provisioner are held until the session is closed.
"""

from __future__ import annotations

import time
from types import TracebackType
from typing import Optional, Sequence

from opentelemetry import trace

from gpu_collector.domain.entities.monitoring import MonitoringTarget
from gpu_collector.domain.entities.topology import Topology
from gpu_collector.domain.services.monitoring_resolver import MonitoringResolver
from gpu_collector.domain.services.rollback import CleanupAction, run_cleanups
from gpu_collector.domain.services.topology_builder import TopologyBuilder
from gpu_collector.domain.services.watch_provisioner import WatchProvisioner
from gpu_collector.domain.value_objects.identifiers import EntityGroup
from gpu_collector.infrastructure.config import Config
from gpu_collector.infrastructure.host import get_hostname
from gpu_collector.infrastructure.logging import get_logger
from gpu_collector.infrastructure.tracing import get_tracer
from gpu_collector.infrastructure.metrics import MetricsRegistry
from gpu_collector.ports.outbound import TelemetryBackendPort

logger = get_logger(__name__)


def topology_counts(topology: Topology) -> dict[str, int]:
    """Discovered entities per class, keyed by the configured class names."""
    return {
        "gpu": topology.gpu_count,
        "gpu_instance": sum(len(gpu.gpu_instances) for gpu in topology.gpus),
        "switch": len(topology.switches),
        "link": sum(len(sw.links) for sw in topology.switches),
        "cpu": len(topology.cpus),
        "cpu_core": sum(len(cpu.cores) for cpu in topology.cpus),
    }


class CollectorSession:
    """Topology discovery and watch setup for one monitoring session."""

    def __init__(
        self,
        backend: TelemetryBackendPort,
        config: Config,
        metrics: Optional[MetricsRegistry] = None,
        tracer: Optional[trace.Tracer] = None,
    ) -> None:
        """Initialize the session.

        Args:
            backend: Telemetry backend used by every component.
            config: Collector configuration with the three filters.
            metrics: Optional registry for collector self-metrics.
            tracer: Optional tracer; defaults to the global provider's.
        """
        self._backend = backend
        self._config = config
        self._metrics = metrics
        self._tracer = tracer or get_tracer()

        self._topology: Optional[Topology] = None
        self._targets: list[MonitoringTarget] = []
        self._cleanups: list[CleanupAction] = []
        self._hostname = ""

    @property
    def topology(self) -> Topology:
        if self._topology is None:
            raise RuntimeError("Session not started")
        return self._topology

    @property
    def targets(self) -> list[MonitoringTarget]:
        return list(self._targets)

    @property
    def hostname(self) -> str:
        return self._hostname

    @property
    def entity_group(self) -> EntityGroup:
        return self._config.collector.requested_entity_group

    def build_topology(self) -> Topology:
        collector = self._config.collector
        builder = TopologyBuilder(self._backend, use_fake_gpus=collector.use_fake_gpus)

        started = time.perf_counter()
        with self._tracer.start_as_current_span(
            "topology.build", attributes={"entity_group": self.entity_group.name}
        ):
            topology = builder.build(
                self.entity_group,
                self._config.gpu_filter.to_filter(),
                self._config.switch_filter.to_filter(),
                self._config.cpu_filter.to_filter(),
            )

        if self._metrics:
            self._metrics.topology_build_seconds.observe(time.perf_counter() - started)
            for entity_group, count in topology_counts(topology).items():
                self._metrics.topology_entities.labels(entity_group=entity_group).set(count)
        return topology

    def start(self, field_ids: Sequence[int]) -> list[MonitoringTarget]:
        """Discover the topology and watch ``field_ids`` on the resolved targets.

        Raises:
            RuntimeError: If the session was already started.
            TopologyError: If the topology cannot be built or verified.
            BackendError: If the backend fails; no resources are left behind.
        """
        if self._topology is not None:
            raise RuntimeError("Session already started")

        collector = self._config.collector
        self._hostname = get_hostname(collector.no_hostname)
        log = logger.bind(hostname=self._hostname, entity_group=self.entity_group.name)

        topology = self.build_topology()

        with self._tracer.start_as_current_span("targets.resolve"):
            targets = MonitoringResolver(topology).resolve()
        log.info("targets_resolved", targets=len(targets))

        provisioner = WatchProvisioner(
            self._backend,
            max_group_entities=collector.max_group_entities,
            metrics=self._metrics,
        )
        with self._tracer.start_as_current_span("watch.setup", attributes={"fields": len(field_ids)}):
            cleanups = provisioner.setup_field_watch(
                field_ids,
                topology,
                update_interval_us=collector.collect_interval_ms * 1000,
                max_keep_age=collector.max_keep_age_seconds,
                max_keep_samples=collector.max_keep_samples,
            )

        self._topology = topology
        self._targets = targets
        self._cleanups = cleanups
        if self._metrics:
            self._metrics.monitored_entities.labels(entity_group=collector.entity_group).set(len(targets))

        log.info("collector_session_started", cleanups=len(cleanups))
        return self.targets

    def close(self) -> None:
        """Release backend resources; safe to call more than once."""
        cleanups, self._cleanups = self._cleanups, []
        if cleanups:
            run_cleanups(cleanups)
            logger.info("collector_session_closed", released=len(cleanups))

    def __enter__(self) -> CollectorSession:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()

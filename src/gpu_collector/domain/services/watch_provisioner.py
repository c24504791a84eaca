"""Watch provisioner: backend groups and field watches for resolved targets.

Grouping depends on the topology's entity class:
1. Links: one group per watched switch holding its monitored links
2. CPU cores: per-CPU groups, split when a group reaches the backend limit
3. Everything else: one group with every resolved target

Each group then gets one field group and a periodic watch. Every backend
resource pushes its release onto a CleanupStack as soon as it exists, so
a failure at any step releases everything created so far before the
first error propagates.
"""

from __future__ import annotations

import logging
import random
from typing import Optional, Sequence

from gpu_collector.domain.entities.topology import Topology
from gpu_collector.domain.services.filter_policy import FilterPolicy
from gpu_collector.domain.services.monitoring_resolver import MonitoringResolver
from gpu_collector.domain.services.rollback import CleanupAction, CleanupStack
from gpu_collector.domain.value_objects.identifiers import (
    GROUP_MAX_ENTITIES,
    EntityGroup,
    FieldGroupHandle,
    GroupHandle,
)
from gpu_collector.ports.outbound import (
    BackendError,
    BackendNotConfiguredError,
    ProvisioningMetricsPort,
    TelemetryBackendPort,
)

logger = logging.getLogger(__name__)


def _group_name() -> str:
    return f"gpu-collector-group-{random.getrandbits(64)}"


def _field_group_name() -> str:
    return f"gpu-collector-fieldgroup-{random.getrandbits(64)}"


class WatchProvisioner:
    """Create backend groups and field watches for a topology."""

    def __init__(
        self,
        backend: TelemetryBackendPort,
        max_group_entities: int = GROUP_MAX_ENTITIES,
        metrics: Optional[ProvisioningMetricsPort] = None,
    ) -> None:
        """Initialize the provisioner.

        Args:
            backend: Telemetry backend that owns groups and watches.
            max_group_entities: Backend limit on entities per group.
            metrics: Optional sink for provisioning counters.
        """
        if max_group_entities < 1:
            raise ValueError("max_group_entities must be positive")
        self._backend = backend
        self._max_group_entities = max_group_entities
        self._metrics = metrics

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def _new_group(self, stack: CleanupStack) -> GroupHandle:
        group = stack.acquire("group", lambda: self._backend.create_group(_group_name()), self._destroy_group)
        logger.debug(f"Created group {group}")
        if self._metrics:
            self._metrics.group_created()
        return group

    def _destroy_group(self, group: GroupHandle) -> None:
        try:
            self._backend.destroy_group(group)
        except BackendNotConfiguredError:
            logger.debug(f"Group {group} already destroyed")
        except BackendError as e:
            logger.warning(f"Can not destroy group {group}: {e}")
            if self._metrics:
                self._metrics.cleanup_failed("group")

    def _destroy_field_group(self, field_group: FieldGroupHandle) -> None:
        try:
            self._backend.destroy_field_group(field_group)
        except BackendNotConfiguredError:
            logger.debug(f"Field group {field_group} already destroyed")
        except BackendError as e:
            logger.warning(f"Can not destroy field group {field_group}: {e}")
            if self._metrics:
                self._metrics.cleanup_failed("field_group")

    def create_group(self, topology: Topology, stack: CleanupStack) -> GroupHandle:
        """Create one group holding every resolved target.

        The group's release is on ``stack`` before any entity is added.
        """
        targets = MonitoringResolver(topology).resolve()
        group = self._new_group(stack)

        for target in targets:
            if target.entity_group == EntityGroup.LINK:
                self._backend.add_link_entity_to_group(group, target.entity_id, target.parent_id)
            else:
                self._backend.add_entity_to_group(group, target.entity_group, target.entity_id)

        return group

    def create_link_groups(self, topology: Topology, stack: CleanupStack) -> list[GroupHandle]:
        """Create one group per watched switch with its monitored links.

        A watched switch without monitored links still gets an empty group.
        """
        policy = FilterPolicy(topology)
        groups = []

        for sw in topology.switches:
            if not policy.is_switch_watched(sw.entity_id):
                continue

            group = self._new_group(stack)
            groups.append(group)

            for link in sw.links:
                if not policy.is_link_monitored(link, sw.entity_id):
                    continue
                self._backend.add_link_entity_to_group(group, link.index, link.parent_id)

        return groups

    def create_core_groups(self, topology: Topology, stack: CleanupStack) -> list[GroupHandle]:
        """Create per-CPU core groups of at most ``max_group_entities`` cores.

        Each CPU starts a fresh group; a CPU without watched cores gets none.
        """
        policy = FilterPolicy(topology)
        groups = []

        for cpu in topology.cpus:
            if not policy.is_cpu_watched(cpu.entity_id):
                continue

            group_core_count = 0
            group: Optional[GroupHandle] = None
            for core in cpu.cores:
                if not policy.is_core_watched(core, cpu.entity_id):
                    continue

                if group_core_count % self._max_group_entities == 0:
                    group = self._new_group(stack)
                    groups.append(group)

                group_core_count += 1
                self._backend.add_entity_to_group(group, EntityGroup.CPU_CORE, core)

        return groups

    # ------------------------------------------------------------------
    # Watches
    # ------------------------------------------------------------------

    def new_field_group(self, field_ids: Sequence[int], stack: CleanupStack) -> FieldGroupHandle:
        return stack.acquire(
            "field_group",
            lambda: self._backend.create_field_group(_field_group_name(), list(field_ids)),
            self._destroy_field_group,
        )

    def setup_field_watch(
        self,
        field_ids: Sequence[int],
        topology: Topology,
        update_interval_us: int,
        max_keep_age: float = 0.0,
        max_keep_samples: int = 1,
    ) -> list[CleanupAction]:
        """Group the topology's targets and watch ``field_ids`` on every group.

        Returns:
            Release actions for every created resource; the caller runs
            them at teardown.

        Raises:
            BackendError: From the first failing backend call, after every
                resource created so far has been released.
        """
        stage = "group"
        try:
            with CleanupStack() as stack:
                if topology.entity_group == EntityGroup.LINK:
                    groups = self.create_link_groups(topology, stack)
                elif topology.entity_group == EntityGroup.CPU_CORE:
                    groups = self.create_core_groups(topology, stack)
                else:
                    groups = [self.create_group(topology, stack)]

                for group in groups:
                    stage = "field_group"
                    field_group = self.new_field_group(field_ids, stack)
                    stage = "watch"
                    self._backend.watch_field_group(
                        field_group, group, update_interval_us, max_keep_age, max_keep_samples
                    )
                    if self._metrics:
                        self._metrics.field_watch_created()

                logger.info(
                    f"Watching {len(field_ids)} fields on {len(groups)} "
                    f"{topology.entity_group.name} groups"
                )
                return stack.pop_all()
        except Exception as e:
            logger.error(f"Field watch setup failed at {stage}: {e}")
            if self._metrics:
                self._metrics.provisioning_failed(stage)
            raise

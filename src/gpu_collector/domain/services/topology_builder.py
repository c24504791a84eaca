"""Topology builder: turns telemetry backend inventory into a Topology.

The builder queries only the inventory needed for the requested entity
class:
1. GPUs and GPU instances: device list, instance hierarchy, profile names
2. Switches and links: switch list plus link status list
3. CPUs and cores: CPU hierarchy with owned-core bitmasks

Once built, the filter of the requested class is verified against the
topology; an unknown requested ID fails the build.
"""

from __future__ import annotations

import logging
from typing import Sequence

from gpu_collector.domain.entities.topology import (
    CPU,
    GPU,
    ComputeInstance,
    DeviceInfo,
    GPUInstance,
    Switch,
    Topology,
    TopologyError,
)
from gpu_collector.domain.services.filter_policy import FilterPolicy
from gpu_collector.domain.value_objects.device_filter import DeviceFilter
from gpu_collector.domain.value_objects.identifiers import (
    FIELD_DEV_NAME,
    FV_FLAG_LIVE_DATA,
    MAX_CPU_CORE_BITMASK_COUNT,
    MAX_NUM_CPU_CORES,
    EntityGroup,
    EntityPair,
)
from gpu_collector.ports.outbound import (
    BackendError,
    FieldValue,
    HierarchyEntry,
    TelemetryBackendPort,
)

logger = logging.getLogger(__name__)


class EmptyInventoryError(TopologyError):
    """The backend reported no entities of the requested class."""
    pass


class ProfileNameMismatchError(TopologyError):
    """Some profile names could not be matched to a GPU instance."""

    def __init__(self, unmatched: list[EntityPair]) -> None:
        self.unmatched = unmatched
        details = "".join(f" group {int(e.entity_group)}, id {e.entity_id}" for e in unmatched)
        super().__init__(f"cannot find match for entities:{details}")


def decode_core_bitmask(words: Sequence[int]) -> list[int]:
    """Decode an owned-core bitmask into ascending core indices.

    Args:
        words: 64-bit bitmask words, lowest cores first. Words beyond
            the platform maximum are ignored.

    Returns:
        Indices of set bits below MAX_NUM_CPU_CORES.
    """
    bits = list(words[:MAX_CPU_CORE_BITMASK_COUNT])
    bits.extend([0] * (MAX_CPU_CORE_BITMASK_COUNT - len(bits)))

    cores = []
    for core in range(MAX_NUM_CPU_CORES):
        word, bit = divmod(core, 64)
        if bits[word] >> bit & 1:
            cores.append(core)
    return cores


class TopologyBuilder:
    """Build a topology for one entity class from the telemetry backend."""

    def __init__(self, backend: TelemetryBackendPort, use_fake_gpus: bool = False) -> None:
        """Initialize the builder.

        Args:
            backend: Telemetry backend to query.
            use_fake_gpus: Substitute placeholder devices for GPUs the
                backend cannot describe instead of failing.
        """
        self._backend = backend
        self._use_fake_gpus = use_fake_gpus

    def build(
        self,
        entity_group: EntityGroup,
        gpu_filter: DeviceFilter,
        switch_filter: DeviceFilter,
        cpu_filter: DeviceFilter,
    ) -> Topology:
        """Query the backend and assemble the topology.

        Raises:
            TopologyError: On invalid entity class, empty inventory, broken
                instance hierarchy or unknown filter IDs.
            BackendError: If a backend query fails.
        """
        logger.info(f"Initializing system entities of type: {entity_group.name}")

        topology = Topology(
            entity_group=entity_group,
            gpu_filter=gpu_filter,
            switch_filter=switch_filter,
            cpu_filter=cpu_filter,
        )

        if entity_group in (EntityGroup.SWITCH, EntityGroup.LINK):
            self._load_switches(topology)
        elif entity_group in (EntityGroup.GPU, EntityGroup.GPU_I):
            self._load_gpus(topology)
        elif entity_group in (EntityGroup.CPU, EntityGroup.CPU_CORE):
            self._load_cpus(topology)
        else:
            raise TopologyError(f"invalid entity type: {entity_group.name}")

        FilterPolicy(topology).verify_presence()
        logger.debug(f"System entities of type {entity_group.name} initialized")
        return topology

    # ------------------------------------------------------------------
    # GPUs
    # ------------------------------------------------------------------

    def _load_gpus(self, topology: Topology) -> None:
        gpu_count = self._backend.device_count()

        for i in range(gpu_count):
            try:
                device_info = self._backend.device_info(i)
            except BackendError as e:
                if not self._use_fake_gpus:
                    raise
                logger.warning(f"Using placeholder for GPU {i}: {e}")
                device_info = DeviceInfo.placeholder(i)
            topology.gpus.append(GPU(device_info=device_info))

        instances = self._attach_gpu_instances(topology, self._backend.gpu_instance_hierarchy())
        if instances:
            self._populate_profile_names(topology, instances)

        logger.info(
            f"Discovered {topology.gpu_count} GPUs with {len(instances)} GPU instances"
        )

    def _attach_gpu_instances(self, topology: Topology, hierarchy: list[HierarchyEntry]) -> list[EntityPair]:
        """Rebuild the GPU -> instance -> compute instance tree.

        Compute instances are attached through their parent's entity ID,
        so the flat list may interleave records in any order.

        Returns:
            GPU instance entities, in hierarchy order.
        """
        instances: dict[int, GPUInstance] = {}
        pending_compute: list[HierarchyEntry] = []
        added: list[EntityPair] = []

        for entry in hierarchy:
            if entry.parent.entity_group == EntityGroup.GPU:
                gpu = topology.find_gpu(entry.parent.entity_id)
                if gpu is None:
                    raise TopologyError(
                        f"GPU instance {entry.entity.entity_id} references unknown GPU {entry.parent.entity_id}"
                    )
                instance = GPUInstance(entity_id=entry.entity.entity_id, info=entry.info)
                gpu.mig_enabled = True
                gpu.gpu_instances.append(instance)
                instances[instance.entity_id] = instance
                added.append(EntityPair(EntityGroup.GPU_I, instance.entity_id))
            elif entry.parent.entity_group == EntityGroup.GPU_I:
                pending_compute.append(entry)

        for entry in pending_compute:
            parent = instances.get(entry.parent.entity_id)
            if parent is None:
                raise TopologyError(
                    f"compute instance {entry.entity.entity_id} references unknown GPU instance {entry.parent.entity_id}"
                )
            parent.compute_instances.append(ComputeInstance(entity_id=entry.entity.entity_id, info=entry.info))

        return added

    def _populate_profile_names(self, topology: Topology, entities: list[EntityPair]) -> None:
        values = self._backend.latest_field_values(entities, [FIELD_DEV_NAME], FV_FLAG_LIVE_DATA)
        set_profile_names(topology, values)

    # ------------------------------------------------------------------
    # Switches
    # ------------------------------------------------------------------

    def _load_switches(self, topology: Topology) -> None:
        switch_ids = self._backend.switch_ids()
        if not switch_ids:
            raise EmptyInventoryError("no switches to monitor")

        links = self._backend.link_statuses()

        for switch_id in switch_ids:
            matching = [
                link for link in links
                if link.parent_type == EntityGroup.SWITCH and link.parent_id == switch_id
            ]
            topology.switches.append(Switch(entity_id=switch_id, links=matching))

        logger.info(f"Discovered {len(topology.switches)} switches with {len(links)} links")

    # ------------------------------------------------------------------
    # CPUs
    # ------------------------------------------------------------------

    def _load_cpus(self, topology: Topology) -> None:
        hierarchy = self._backend.cpu_hierarchy()
        if not hierarchy:
            raise EmptyInventoryError("no CPUs to monitor")

        for entry in hierarchy:
            topology.cpus.append(CPU(entity_id=entry.cpu_id, cores=decode_core_bitmask(entry.owned_cores)))

        logger.info(f"Discovered {len(topology.cpus)} CPUs")


def set_profile_names(topology: Topology, values: list[FieldValue]) -> None:
    """Apply profile names to GPU instances.

    Every matching value is applied before any error is raised.

    Raises:
        ProfileNameMismatchError: Listing every value with no matching instance.
    """
    unmatched: list[EntityPair] = []
    for value in values:
        if not topology.set_gpu_instance_profile_name(value.entity_id, str(value.value)):
            unmatched.append(EntityPair(EntityGroup(value.entity_group), value.entity_id))

    if unmatched:
        raise ProfileNameMismatchError(unmatched)

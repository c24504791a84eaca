"""Hardware topology entities: GPUs, GPU instances, switches and CPUs.

The topology is built once per collector session from the telemetry
backend inventory and is read-only afterwards, except for GPU instance
profile names which are filled in by the builder before resolution.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from gpu_collector.domain.value_objects.device_filter import DeviceFilter
from gpu_collector.domain.value_objects.identifiers import EntityGroup, LinkState


class TopologyError(Exception):
    """Topology construction or validation failed."""
    pass


@dataclass(frozen=True)
class DeviceInfo:
    """Identity snapshot of a physical GPU."""
    gpu: int                     # Backend GPU index
    uuid: str
    name: str = ""
    pci_bus_id: str = ""
    serial: str = ""

    @classmethod
    def placeholder(cls, index: int) -> DeviceInfo:
        """Synthetic identity for a GPU the backend could not describe."""
        return cls(gpu=index, uuid=f"fake{index}")


@dataclass(frozen=True)
class InstanceInfo:
    """MIG identity of a GPU or compute instance."""
    gpu_uuid: str = ""
    nvml_gpu_index: int = 0
    nvml_instance_id: int = 0
    nvml_compute_instance_id: int = 0
    nvml_profile_id: int = 0
    profile_slices: int = 0


@dataclass
class ComputeInstance:
    """Compute slice nested in a GPU instance."""
    entity_id: int
    info: InstanceInfo = field(default_factory=InstanceInfo)
    profile_name: str = ""


@dataclass
class GPUInstance:
    """Hardware partition of a GPU."""
    entity_id: int
    info: InstanceInfo = field(default_factory=InstanceInfo)
    profile_name: str = ""       # Filled in after the hierarchy is built
    compute_instances: list[ComputeInstance] = field(default_factory=list)


@dataclass
class GPU:
    """A GPU and its partitions."""
    device_info: DeviceInfo
    mig_enabled: bool = False
    gpu_instances: list[GPUInstance] = field(default_factory=list)

    @property
    def gpu_id(self) -> int:
        return self.device_info.gpu


@dataclass(frozen=True)
class Link:
    """Interconnect link reported by the backend."""
    index: int
    state: LinkState
    parent_type: EntityGroup = EntityGroup.SWITCH
    parent_id: int = 0

    @property
    def is_up(self) -> bool:
        return self.state == LinkState.UP


@dataclass
class Switch:
    """Interconnect switch with its links."""
    entity_id: int
    links: list[Link] = field(default_factory=list)


@dataclass
class CPU:
    """CPU socket with the indices of the cores it owns."""
    entity_id: int
    cores: list[int] = field(default_factory=list)


@dataclass
class Topology:
    """Normalized inventory for one entity class plus its filters."""
    entity_group: EntityGroup
    gpu_filter: DeviceFilter = field(default_factory=DeviceFilter.flexible)
    switch_filter: DeviceFilter = field(default_factory=DeviceFilter.flexible)
    cpu_filter: DeviceFilter = field(default_factory=DeviceFilter.flexible)
    gpus: list[GPU] = field(default_factory=list)
    switches: list[Switch] = field(default_factory=list)
    cpus: list[CPU] = field(default_factory=list)

    @property
    def gpu_count(self) -> int:
        return len(self.gpus)

    def gpu(self, index: int) -> GPU:
        return self.gpus[index]

    def switch(self, index: int) -> Switch:
        return self.switches[index]

    def cpu(self, index: int) -> CPU:
        return self.cpus[index]

    def find_gpu(self, gpu_id: int) -> Optional[GPU]:
        """Find a GPU by its backend index."""
        for gpu in self.gpus:
            if gpu.gpu_id == gpu_id:
                return gpu
        return None

    def find_gpu_instance(self, entity_id: int) -> Optional[tuple[GPU, GPUInstance]]:
        """Find a GPU instance and the GPU that owns it."""
        for gpu in self.gpus:
            for instance in gpu.gpu_instances:
                if instance.entity_id == entity_id:
                    return gpu, instance
        return None

    def find_switch(self, switch_id: int) -> Optional[Switch]:
        for sw in self.switches:
            if sw.entity_id == switch_id:
                return sw
        return None

    def find_cpu(self, cpu_id: int) -> Optional[CPU]:
        for cpu in self.cpus:
            if cpu.entity_id == cpu_id:
                return cpu
        return None

    def gpu_id_exists(self, gpu_id: int) -> bool:
        return self.find_gpu(gpu_id) is not None

    def gpu_instance_id_exists(self, entity_id: int) -> bool:
        return self.find_gpu_instance(entity_id) is not None

    def switch_id_exists(self, switch_id: int) -> bool:
        return self.find_switch(switch_id) is not None

    def link_id_exists(self, link_index: int) -> bool:
        """Check if any switch owns a link with this index."""
        return any(link.index == link_index for sw in self.switches for link in sw.links)

    def cpu_id_exists(self, cpu_id: int) -> bool:
        return self.find_cpu(cpu_id) is not None

    def cpu_core_id_exists(self, core_id: int) -> bool:
        """Check if any CPU owns this core index."""
        return any(core_id in cpu.cores for cpu in self.cpus)

    def set_gpu_instance_profile_name(self, entity_id: int, profile_name: str) -> bool:
        """Record the profile name of a GPU instance.

        Returns:
            False if no GPU instance has this entity ID.
        """
        found = self.find_gpu_instance(entity_id)
        if found is None:
            return False
        found[1].profile_name = profile_name
        return True

    def gpu_instance_identifier(self, gpu_uuid: str, gpu_instance_id: int) -> str:
        """Label for a GPU instance: "<gpu index>-<instance id>".

        Returns an empty string when no GPU has the given UUID.
        """
        for gpu in self.gpus:
            if gpu.device_info.uuid == gpu_uuid:
                return f"{gpu.gpu_id}-{gpu_instance_id}"
        return ""

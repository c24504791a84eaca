"""Domain entities for the collector.

Entities represent the hardware inventory and what gets monitored:
- Topology: GPUs with instances, switches with links, CPUs with cores
- MonitoringTarget: A resolved entity to watch
"""

from gpu_collector.domain.entities.monitoring import MonitoringTarget
from gpu_collector.domain.entities.topology import (
    CPU,
    GPU,
    ComputeInstance,
    DeviceInfo,
    GPUInstance,
    InstanceInfo,
    Link,
    Switch,
    Topology,
    TopologyError,
)

__all__ = [
    # Topology
    "Topology",
    "TopologyError",
    "GPU",
    "GPUInstance",
    "ComputeInstance",
    "DeviceInfo",
    "InstanceInfo",
    "Switch",
    "Link",
    "CPU",
    # Monitoring
    "MonitoringTarget",
]

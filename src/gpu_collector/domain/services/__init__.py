"""Domain services for topology discovery and watch setup.

Services implement the collector's core workflow:
- TopologyBuilder: Backend inventory to normalized topology
- FilterPolicy: Presence verification and membership tests
- MonitoringResolver: Ordered monitoring targets
- WatchProvisioner: Backend groups and field watches with rollback
"""

from gpu_collector.domain.services.filter_policy import (
    EntityNotFoundError,
    FilterPolicy,
)
from gpu_collector.domain.services.monitoring_resolver import (
    GPUResolution,
    GPUResolutionMode,
    MonitoringResolver,
)
from gpu_collector.domain.services.rollback import (
    CleanupAction,
    CleanupStack,
    run_cleanups,
)
from gpu_collector.domain.services.topology_builder import (
    EmptyInventoryError,
    ProfileNameMismatchError,
    TopologyBuilder,
    decode_core_bitmask,
)
from gpu_collector.domain.services.watch_provisioner import WatchProvisioner

__all__ = [
    "TopologyBuilder",
    "EmptyInventoryError",
    "ProfileNameMismatchError",
    "decode_core_bitmask",
    "FilterPolicy",
    "EntityNotFoundError",
    "MonitoringResolver",
    "GPUResolution",
    "GPUResolutionMode",
    "WatchProvisioner",
    "CleanupAction",
    "CleanupStack",
    "run_cleanups",
]

"""Outbound ports - Telemetry backend interface for the collector.

The telemetry backend supplies the hardware inventory and owns the
entity groups, field groups and watches the collector registers. It is
treated as a fallible remote service: every call may raise BackendError
and no call is retried by the collector.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Protocol, Sequence

from gpu_collector.domain.entities.topology import DeviceInfo, InstanceInfo, Link
from gpu_collector.domain.value_objects.identifiers import (
    EntityGroup,
    EntityPair,
    FieldGroupHandle,
    GroupHandle,
)


# =============================================================================
# Errors
# =============================================================================


class BackendError(Exception):
    """Telemetry backend call failed."""
    pass


class BackendNotFoundError(BackendError):
    """Requested backend entity does not exist."""
    pass


class BackendNotConfiguredError(BackendError):
    """Backend resource is not configured (already released or expired)."""
    pass


# =============================================================================
# Inventory records
# =============================================================================


@dataclass(frozen=True)
class HierarchyEntry:
    """One record of the flat GPU instance hierarchy.

    GPU instances have a GPU parent; compute instances have a GPU
    instance parent.
    """
    entity: EntityPair
    parent: EntityPair
    info: InstanceInfo = field(default_factory=InstanceInfo)


@dataclass(frozen=True)
class FieldValue:
    """Latest value of one field for one entity."""
    entity_group: EntityGroup
    entity_id: int
    field_id: int
    value: object


@dataclass(frozen=True)
class CPUHierarchyEntry:
    """A CPU and its owned-core bitmask as 64-bit words, lowest word first."""
    cpu_id: int
    owned_cores: tuple[int, ...] = ()


# =============================================================================
# Telemetry Backend Port
# =============================================================================


class TelemetryBackendPort(Protocol):
    """Protocol for the telemetry backend.

    Inventory queries feed the topology builder; group and watch
    operations are used by the watch provisioner.
    """

    @abstractmethod
    def device_count(self) -> int:
        """Return the number of GPUs the backend knows about."""
        ...

    @abstractmethod
    def device_info(self, index: int) -> DeviceInfo:
        """Describe the GPU at an index.

        Raises:
            BackendNotFoundError: If the backend has no such device.
        """
        ...

    @abstractmethod
    def gpu_instance_hierarchy(self) -> list[HierarchyEntry]:
        """Return GPU and compute instances as a flat parent-tagged list."""
        ...

    @abstractmethod
    def latest_field_values(
        self,
        entities: Sequence[EntityPair],
        field_ids: Sequence[int],
        flags: int,
    ) -> list[FieldValue]:
        """Fetch the latest values of fields for a batch of entities."""
        ...

    @abstractmethod
    def switch_ids(self) -> list[int]:
        """Return the entity IDs of all switches."""
        ...

    @abstractmethod
    def link_statuses(self) -> list[Link]:
        """Return every interconnect link with its parent and state."""
        ...

    @abstractmethod
    def cpu_hierarchy(self) -> list[CPUHierarchyEntry]:
        """Return CPUs with their owned-core bitmasks."""
        ...

    @abstractmethod
    def create_group(self, name: str) -> GroupHandle:
        """Create an empty entity group."""
        ...

    @abstractmethod
    def destroy_group(self, group: GroupHandle) -> None:
        """Destroy an entity group.

        Raises:
            BackendNotConfiguredError: If the group no longer exists.
        """
        ...

    @abstractmethod
    def add_entity_to_group(self, group: GroupHandle, entity_group: EntityGroup, entity_id: int) -> None:
        """Add an entity to a group."""
        ...

    @abstractmethod
    def add_link_entity_to_group(self, group: GroupHandle, link_index: int, parent_id: int) -> None:
        """Add a link, addressed through its parent switch, to a group."""
        ...

    @abstractmethod
    def create_field_group(self, name: str, field_ids: Sequence[int]) -> FieldGroupHandle:
        """Create a field group over the given field IDs."""
        ...

    @abstractmethod
    def destroy_field_group(self, field_group: FieldGroupHandle) -> None:
        """Destroy a field group."""
        ...

    @abstractmethod
    def watch_field_group(
        self,
        field_group: FieldGroupHandle,
        group: GroupHandle,
        update_interval_us: int,
        max_keep_age_s: float,
        max_keep_samples: int,
    ) -> None:
        """Start periodic sampling of a field group over an entity group."""
        ...


# =============================================================================
# Provisioning Metrics Port
# =============================================================================


class ProvisioningMetricsPort(Protocol):
    """Protocol for counters recorded while provisioning watches."""

    @abstractmethod
    def group_created(self) -> None:
        """Count a created entity group."""
        ...

    @abstractmethod
    def field_watch_created(self) -> None:
        """Count a registered field watch."""
        ...

    @abstractmethod
    def provisioning_failed(self, stage: str) -> None:
        """Count a failed setup at ``stage`` (group, field_group or watch)."""
        ...

    @abstractmethod
    def cleanup_failed(self, resource: str) -> None:
        """Count a resource release that failed."""
        ...


__all__ = [
    "BackendError",
    "BackendNotConfiguredError",
    "BackendNotFoundError",
    "CPUHierarchyEntry",
    "FieldValue",
    "HierarchyEntry",
    "ProvisioningMetricsPort",
    "TelemetryBackendPort",
]

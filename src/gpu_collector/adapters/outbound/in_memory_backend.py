"""In-memory telemetry backend for testing and development.

This adapter provides an implementation of the TelemetryBackendPort
protocol that keeps inventory, groups, field groups and watches in
memory, so the collector can run without real accelerator hardware.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Sequence

from gpu_collector.domain.entities.topology import DeviceInfo, Link
from gpu_collector.domain.value_objects.identifiers import (
    EntityGroup,
    EntityPair,
    FieldGroupHandle,
    GroupHandle,
)
from gpu_collector.ports.outbound import (
    BackendError,
    BackendNotConfiguredError,
    BackendNotFoundError,
    CPUHierarchyEntry,
    FieldValue,
    HierarchyEntry,
)

logger = logging.getLogger(__name__)


@dataclass
class GroupMember:
    """Entity added to an in-memory group."""
    entity_group: EntityGroup
    entity_id: int
    parent_id: int | None = None


@dataclass
class Watch:
    """A registered field watch."""
    field_group: FieldGroupHandle
    group: GroupHandle
    update_interval_us: int
    max_keep_age_s: float
    max_keep_samples: int


@dataclass
class Inventory:
    """Hardware the in-memory backend reports."""
    gpu_count: int = 0
    devices: dict[int, DeviceInfo] = field(default_factory=dict)
    hierarchy: list[HierarchyEntry] = field(default_factory=list)
    profile_names: dict[int, str] = field(default_factory=dict)   # GPU instance ID -> name
    switches: list[int] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    cpus: list[CPUHierarchyEntry] = field(default_factory=list)


class InMemoryTelemetryBackend:
    """In-memory implementation of TelemetryBackendPort.

    Failures can be injected per operation name to exercise rollback
    paths: ``fail("add_entity_to_group", after=2)`` lets two calls
    succeed and makes every later call raise BackendError.

    Example:
        backend = InMemoryTelemetryBackend(Inventory(gpu_count=1, devices={0: DeviceInfo(0, "GPU-0")}))
        group = backend.create_group("g")
        backend.add_entity_to_group(group, EntityGroup.GPU, 0)
    """

    def __init__(self, inventory: Inventory | None = None) -> None:
        self.inventory = inventory or Inventory()
        self.groups: dict[GroupHandle, list[GroupMember]] = {}
        self.field_groups: dict[FieldGroupHandle, list[int]] = {}
        self.watches: list[Watch] = []
        self.calls: Counter[str] = Counter()
        self._failures: dict[str, tuple[int, BackendError]] = {}
        self._next_handle = 1

    def fail(self, operation: str, after: int = 0, error: BackendError | None = None) -> None:
        """Make ``operation`` raise once it has succeeded ``after`` times."""
        self._failures[operation] = (after, error or BackendError(f"{operation} failed"))

    def _call(self, operation: str) -> None:
        count = self.calls[operation]
        self.calls[operation] += 1
        if operation in self._failures:
            after, error = self._failures[operation]
            if count >= after:
                raise error

    def _handle(self) -> int:
        handle = self._next_handle
        self._next_handle += 1
        return handle

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    def device_count(self) -> int:
        self._call("device_count")
        return self.inventory.gpu_count

    def device_info(self, index: int) -> DeviceInfo:
        self._call("device_info")
        if index not in self.inventory.devices:
            raise BackendNotFoundError(f"no device at index {index}")
        return self.inventory.devices[index]

    def gpu_instance_hierarchy(self) -> list[HierarchyEntry]:
        self._call("gpu_instance_hierarchy")
        return list(self.inventory.hierarchy)

    def latest_field_values(
        self,
        entities: Sequence[EntityPair],
        field_ids: Sequence[int],
        flags: int,
    ) -> list[FieldValue]:
        self._call("latest_field_values")
        values = []
        for entity in entities:
            for field_id in field_ids:
                values.append(FieldValue(
                    entity_group=entity.entity_group,
                    entity_id=entity.entity_id,
                    field_id=field_id,
                    value=self.inventory.profile_names.get(entity.entity_id, ""),
                ))
        return values

    def switch_ids(self) -> list[int]:
        self._call("switch_ids")
        return list(self.inventory.switches)

    def link_statuses(self) -> list[Link]:
        self._call("link_statuses")
        return list(self.inventory.links)

    def cpu_hierarchy(self) -> list[CPUHierarchyEntry]:
        self._call("cpu_hierarchy")
        return list(self.inventory.cpus)

    # ------------------------------------------------------------------
    # Groups and watches
    # ------------------------------------------------------------------

    def create_group(self, name: str) -> GroupHandle:
        self._call("create_group")
        group = GroupHandle(self._handle())
        self.groups[group] = []
        logger.debug(f"Created group {group} ({name})")
        return group

    def destroy_group(self, group: GroupHandle) -> None:
        self._call("destroy_group")
        if group not in self.groups:
            raise BackendNotConfiguredError(f"group {group} is not configured")
        del self.groups[group]
        self.watches = [w for w in self.watches if w.group != group]
        logger.debug(f"Destroyed group {group}")

    def add_entity_to_group(self, group: GroupHandle, entity_group: EntityGroup, entity_id: int) -> None:
        self._call("add_entity_to_group")
        if group not in self.groups:
            raise BackendNotConfiguredError(f"group {group} is not configured")
        self.groups[group].append(GroupMember(entity_group, entity_id))

    def add_link_entity_to_group(self, group: GroupHandle, link_index: int, parent_id: int) -> None:
        self._call("add_link_entity_to_group")
        if group not in self.groups:
            raise BackendNotConfiguredError(f"group {group} is not configured")
        self.groups[group].append(GroupMember(EntityGroup.LINK, link_index, parent_id))

    def create_field_group(self, name: str, field_ids: Sequence[int]) -> FieldGroupHandle:
        self._call("create_field_group")
        field_group = FieldGroupHandle(self._handle())
        self.field_groups[field_group] = list(field_ids)
        logger.debug(f"Created field group {field_group} ({name})")
        return field_group

    def destroy_field_group(self, field_group: FieldGroupHandle) -> None:
        self._call("destroy_field_group")
        if field_group not in self.field_groups:
            raise BackendNotConfiguredError(f"field group {field_group} is not configured")
        del self.field_groups[field_group]
        self.watches = [w for w in self.watches if w.field_group != field_group]

    def watch_field_group(
        self,
        field_group: FieldGroupHandle,
        group: GroupHandle,
        update_interval_us: int,
        max_keep_age_s: float,
        max_keep_samples: int,
    ) -> None:
        self._call("watch_field_group")
        if group not in self.groups or field_group not in self.field_groups:
            raise BackendNotConfiguredError(f"cannot watch field group {field_group} on group {group}")
        self.watches.append(Watch(field_group, group, update_interval_us, max_keep_age_s, max_keep_samples))

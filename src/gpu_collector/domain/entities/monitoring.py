"""Monitoring targets produced by the resolver."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from gpu_collector.domain.entities.topology import DeviceInfo, GPUInstance
from gpu_collector.domain.value_objects.identifiers import (
    PARENT_ID_IGNORED,
    EntityGroup,
    EntityPair,
)


@dataclass(frozen=True)
class MonitoringTarget:
    """A concrete entity the collector watches."""
    entity: EntityPair
    device_info: Optional[DeviceInfo] = None     # GPU classes only
    instance: Optional[GPUInstance] = None       # Set for GPU instance targets
    parent_id: int = PARENT_ID_IGNORED           # Owning entity for links and cores

    @property
    def entity_group(self) -> EntityGroup:
        return self.entity.entity_group

    @property
    def entity_id(self) -> int:
        return self.entity.entity_id

"""Entity identifiers and backend constants.

Entity groups mirror the telemetry backend's field-entity-group codes so
values can be passed straight through the backend port.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import NewType

# Backend handle for an entity group
GroupHandle = NewType("GroupHandle", int)

# Backend handle for a field group
FieldGroupHandle = NewType("FieldGroupHandle", int)

MAX_NUM_CPU_CORES = 1024
MAX_CPU_CORE_BITMASK_COUNT = MAX_NUM_CPU_CORES // 64

# Backend limit on entities in a single group
GROUP_MAX_ENTITIES = 64

# Parent ID passed for entities the backend addresses without parent context
PARENT_ID_IGNORED = 0

FIELD_DEV_NAME = 50
FV_FLAG_LIVE_DATA = 0x00000001


class EntityGroup(IntEnum):
    """Class of a monitorable entity."""
    NONE = 0
    GPU = 1
    VGPU = 2
    SWITCH = 3
    GPU_I = 4       # GPU instance (sub-partition)
    GPU_CI = 5      # Compute instance inside a GPU instance
    LINK = 6
    CPU = 7
    CPU_CORE = 8


class LinkState(IntEnum):
    """Interconnect link state as reported by the backend."""
    NOT_SUPPORTED = 0
    DISABLED = 1
    DOWN = 2
    UP = 3


@dataclass(frozen=True)
class EntityPair:
    """An entity addressed by its group and ID."""
    entity_group: EntityGroup
    entity_id: int

    def __str__(self) -> str:
        return f"{self.entity_group.name}:{self.entity_id}"

"""Domain value objects for the collector.

Value objects are immutable objects without identity: entity groups,
backend handles, filters and backend constants.
"""

from gpu_collector.domain.value_objects.device_filter import (
    ALL_IDS,
    DeviceFilter,
)
from gpu_collector.domain.value_objects.identifiers import (
    FIELD_DEV_NAME,
    FV_FLAG_LIVE_DATA,
    GROUP_MAX_ENTITIES,
    MAX_CPU_CORE_BITMASK_COUNT,
    MAX_NUM_CPU_CORES,
    PARENT_ID_IGNORED,
    EntityGroup,
    EntityPair,
    FieldGroupHandle,
    GroupHandle,
    LinkState,
)

__all__ = [
    # Filters
    "ALL_IDS",
    "DeviceFilter",
    # Identifiers
    "EntityGroup",
    "EntityPair",
    "FieldGroupHandle",
    "GroupHandle",
    "LinkState",
    # Constants
    "FIELD_DEV_NAME",
    "FV_FLAG_LIVE_DATA",
    "GROUP_MAX_ENTITIES",
    "MAX_CPU_CORE_BITMASK_COUNT",
    "MAX_NUM_CPU_CORES",
    "PARENT_ID_IGNORED",
]

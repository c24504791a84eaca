"""Outbound adapters - telemetry backend implementations."""

from gpu_collector.adapters.outbound.in_memory_backend import (
    GroupMember,
    InMemoryTelemetryBackend,
    Inventory,
    Watch,
)

__all__ = [
    "GroupMember",
    "InMemoryTelemetryBackend",
    "Inventory",
    "Watch",
]

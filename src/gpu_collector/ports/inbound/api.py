"""Inbound port interfaces for the collector.

Inbound ports define what the core offers to the collection loop that
polls and publishes telemetry.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from gpu_collector.domain.entities.monitoring import MonitoringTarget
from gpu_collector.domain.entities.topology import Topology


class CollectorAPI(Protocol):
    """Main API offered by the collector core."""

    def start(self, field_ids: Sequence[int]) -> list[MonitoringTarget]:
        """Discover the topology and watch fields on the resolved targets.

        Args:
            field_ids: Backend field IDs to sample.

        Returns:
            Targets the collection loop should read.
        """
        ...

    def close(self) -> None:
        """Release every backend resource created by start()."""
        ...

    @property
    def topology(self) -> Topology:
        """Topology discovered by start()."""
        ...

    @property
    def targets(self) -> list[MonitoringTarget]:
        """Targets resolved by start()."""
        ...

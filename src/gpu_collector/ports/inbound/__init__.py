"""Inbound ports - interfaces offered by the collector core."""

from gpu_collector.ports.inbound.api import CollectorAPI

__all__ = [
    "CollectorAPI",
]

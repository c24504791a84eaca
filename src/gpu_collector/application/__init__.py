"""Application layer for the collector.

Orchestrates domain services into a monitoring session.
"""

from gpu_collector.application.collector_session import CollectorSession

__all__ = [
    "CollectorSession",
]

"""Pytest configuration and shared fixtures for collector tests."""

import pytest
from prometheus_client import CollectorRegistry

from gpu_collector.adapters.outbound.in_memory_backend import InMemoryTelemetryBackend, Inventory
from gpu_collector.domain.entities.topology import DeviceInfo, InstanceInfo, Link
from gpu_collector.domain.value_objects.identifiers import EntityGroup, EntityPair, LinkState
from gpu_collector.infrastructure.config import Config
from gpu_collector.infrastructure.container import Container
from gpu_collector.infrastructure.metrics import MetricsRegistry
from gpu_collector.ports.outbound import CPUHierarchyEntry, HierarchyEntry


def gpu_instance_entry(instance_id: int, gpu_id: int) -> HierarchyEntry:
    return HierarchyEntry(
        entity=EntityPair(EntityGroup.GPU_I, instance_id),
        parent=EntityPair(EntityGroup.GPU, gpu_id),
        info=InstanceInfo(nvml_gpu_index=gpu_id, nvml_instance_id=instance_id),
    )


def compute_instance_entry(compute_id: int, instance_id: int) -> HierarchyEntry:
    return HierarchyEntry(
        entity=EntityPair(EntityGroup.GPU_CI, compute_id),
        parent=EntityPair(EntityGroup.GPU_I, instance_id),
    )


def bitmask(*cores: int) -> tuple[int, ...]:
    """Owned-core bitmask words with the given core bits set."""
    words = [0] * (max(cores) // 64 + 1) if cores else []
    for core in cores:
        words[core // 64] |= 1 << (core % 64)
    return tuple(words)


@pytest.fixture(autouse=True)
def reset_container():
    """Reset the DI container before each test."""
    Container.reset()
    yield
    Container.reset()


@pytest.fixture
def test_config() -> Config:
    """Provide a test configuration."""
    return Config()


@pytest.fixture
def collector_registry() -> CollectorRegistry:
    return CollectorRegistry(auto_describe=True)


@pytest.fixture
def metrics_registry(collector_registry: CollectorRegistry) -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    return MetricsRegistry(registry=collector_registry)


@pytest.fixture
def gpu_inventory() -> Inventory:
    """Two GPUs; GPU 1 has instance 100 with one compute instance."""
    return Inventory(
        gpu_count=2,
        devices={
            0: DeviceInfo(gpu=0, uuid="GPU-aaaa", name="NVIDIA H100"),
            1: DeviceInfo(gpu=1, uuid="GPU-bbbb", name="NVIDIA H100"),
        },
        hierarchy=[
            gpu_instance_entry(100, 1),
            compute_instance_entry(200, 100),
        ],
        profile_names={100: "1g.10gb"},
    )


@pytest.fixture
def switch_inventory() -> Inventory:
    """Two switches; switch 0 has links 0 (up) and 1 (down), switch 1 has link 2 (up)."""
    return Inventory(
        switches=[0, 1],
        links=[
            Link(index=0, state=LinkState.UP, parent_type=EntityGroup.SWITCH, parent_id=0),
            Link(index=1, state=LinkState.DOWN, parent_type=EntityGroup.SWITCH, parent_id=0),
            Link(index=2, state=LinkState.UP, parent_type=EntityGroup.SWITCH, parent_id=1),
            Link(index=3, state=LinkState.UP, parent_type=EntityGroup.GPU, parent_id=0),
        ],
    )


@pytest.fixture
def cpu_inventory() -> Inventory:
    """Two CPUs; CPU 0 owns cores 0-3, CPU 1 owns cores 64 and 65."""
    return Inventory(
        cpus=[
            CPUHierarchyEntry(cpu_id=0, owned_cores=bitmask(0, 1, 2, 3)),
            CPUHierarchyEntry(cpu_id=1, owned_cores=bitmask(64, 65)),
        ],
    )


@pytest.fixture
def gpu_backend(gpu_inventory: Inventory) -> InMemoryTelemetryBackend:
    return InMemoryTelemetryBackend(gpu_inventory)


@pytest.fixture
def switch_backend(switch_inventory: Inventory) -> InMemoryTelemetryBackend:
    return InMemoryTelemetryBackend(switch_inventory)


@pytest.fixture
def cpu_backend(cpu_inventory: Inventory) -> InMemoryTelemetryBackend:
    return InMemoryTelemetryBackend(cpu_inventory)


# Pytest markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")

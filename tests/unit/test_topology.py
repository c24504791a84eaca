"""Unit tests for topology lookups and host identification."""

import pytest

from gpu_collector.domain.entities.topology import (
    CPU,
    GPU,
    DeviceInfo,
    GPUInstance,
    Link,
    Switch,
    Topology,
)
from gpu_collector.domain.value_objects.identifiers import EntityGroup, EntityPair, LinkState
from gpu_collector.infrastructure.host import get_hostname


@pytest.fixture
def topology() -> Topology:
    return Topology(
        entity_group=EntityGroup.GPU,
        gpus=[
            GPU(DeviceInfo(0, "GPU-0")),
            GPU(DeviceInfo(1, "GPU-1"), True, [GPUInstance(100), GPUInstance(101)]),
        ],
        switches=[Switch(5, [Link(3, LinkState.UP, parent_id=5)])],
        cpus=[CPU(0, [0, 1])],
    )


@pytest.mark.unit
class TestTopologyLookups:
    """Test existence checks and lookups."""

    def test_existence(self, topology):
        assert topology.gpu_id_exists(1)
        assert not topology.gpu_id_exists(2)
        assert topology.gpu_instance_id_exists(101)
        assert not topology.gpu_instance_id_exists(1)
        assert topology.switch_id_exists(5)
        assert topology.link_id_exists(3)
        assert not topology.link_id_exists(5)
        assert topology.cpu_id_exists(0)
        assert topology.cpu_core_id_exists(1)
        assert not topology.cpu_core_id_exists(2)

    def test_find_gpu_instance(self, topology):
        gpu, instance = topology.find_gpu_instance(101)
        assert gpu.gpu_id == 1
        assert instance.entity_id == 101
        assert topology.find_gpu_instance(7) is None

    def test_set_profile_name(self, topology):
        assert topology.set_gpu_instance_profile_name(100, "1g.10gb")
        assert topology.gpu(1).gpu_instances[0].profile_name == "1g.10gb"
        assert not topology.set_gpu_instance_profile_name(42, "x")

    def test_gpu_instance_identifier(self, topology):
        """Instances are labelled by GPU index and instance ID."""
        assert topology.gpu_instance_identifier("GPU-1", 100) == "1-100"
        assert topology.gpu_instance_identifier("GPU-9", 100) == ""

    def test_placeholder_device(self):
        assert DeviceInfo.placeholder(3) == DeviceInfo(gpu=3, uuid="fake3")

    def test_entity_pair_str(self):
        assert str(EntityPair(EntityGroup.GPU_I, 4)) == "GPU_I:4"


@pytest.mark.unit
class TestHostname:
    """Test the hostname attached to telemetry."""

    def test_disabled(self, monkeypatch):
        monkeypatch.setenv("NODE_NAME", "node-a")
        assert get_hostname(no_hostname=True) == ""

    def test_node_name_wins(self, monkeypatch):
        monkeypatch.setenv("NODE_NAME", "node-a")
        assert get_hostname() == "node-a"

    def test_local_hostname(self, monkeypatch):
        monkeypatch.delenv("NODE_NAME", raising=False)
        monkeypatch.setattr("socket.gethostname", lambda: "host-b")
        assert get_hostname() == "host-b"

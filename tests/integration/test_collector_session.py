"""Integration tests for collector sessions against the in-memory backend."""

from unittest.mock import MagicMock, patch

import pytest
from opentelemetry import trace

from gpu_collector.adapters.outbound.in_memory_backend import InMemoryTelemetryBackend
from gpu_collector.application.collector_session import CollectorSession
from gpu_collector.domain.services.filter_policy import EntityNotFoundError
from gpu_collector.domain.value_objects.identifiers import EntityGroup
from gpu_collector.infrastructure.config import CollectorConfig, Config, FilterConfig, ObservabilityConfig
from gpu_collector.infrastructure.container import Container, get_container
from gpu_collector.ports.outbound import BackendError

FIELDS = [150, 155, 1001]


def make_config(entity_group: str = "gpu", **filters) -> Config:
    return Config(collector=CollectorConfig(entity_group=entity_group), **filters)


def resources(backend: InMemoryTelemetryBackend) -> tuple[int, int, int]:
    return len(backend.groups), len(backend.field_groups), len(backend.watches)


@pytest.mark.integration
class TestCollectorSession:
    """Test the discover, resolve and watch pipeline."""

    def test_gpu_session_lifecycle(self, gpu_backend, monkeypatch):
        """Start watches the resolved targets; close releases everything."""
        monkeypatch.setenv("NODE_NAME", "node-7")
        session = CollectorSession(gpu_backend, make_config())

        targets = session.start(FIELDS)

        assert [(t.entity_group, t.entity_id) for t in targets] == [
            (EntityGroup.GPU, 0),
            (EntityGroup.GPU_I, 100),
        ]
        assert session.hostname == "node-7"
        assert session.topology.gpu_count == 2
        assert resources(gpu_backend) == (1, 1, 1)
        assert gpu_backend.watches[0].update_interval_us == 30_000_000

        session.close()
        assert resources(gpu_backend) == (0, 0, 0)

    def test_close_is_idempotent(self, gpu_backend):
        session = CollectorSession(gpu_backend, make_config())
        session.start(FIELDS)

        session.close()
        session.close()

        assert gpu_backend.calls["destroy_group"] == 1
        assert gpu_backend.calls["destroy_field_group"] == 1

    def test_context_manager_closes(self, switch_backend):
        with CollectorSession(switch_backend, make_config("link")) as session:
            session.start(FIELDS)
            assert resources(switch_backend) == (2, 2, 2)

        assert resources(switch_backend) == (0, 0, 0)

    def test_start_twice_fails(self, gpu_backend):
        session = CollectorSession(gpu_backend, make_config())
        session.start(FIELDS)

        with pytest.raises(RuntimeError, match="already started"):
            session.start(FIELDS)

    def test_topology_before_start(self, gpu_backend):
        with pytest.raises(RuntimeError, match="not started"):
            CollectorSession(gpu_backend, make_config()).topology

    def test_no_hostname(self, gpu_backend, monkeypatch):
        monkeypatch.setenv("NODE_NAME", "node-7")
        config = Config(collector=CollectorConfig(no_hostname=True))
        session = CollectorSession(gpu_backend, config)
        session.start(FIELDS)
        assert session.hostname == ""

    def test_missing_gpu_creates_nothing(self, gpu_backend):
        """Presence verification fails before any backend resource exists."""
        config = make_config(gpu_filter=FilterConfig(flex=False, major=[3], minor=[]))

        with pytest.raises(EntityNotFoundError, match="GPU ID '3'"):
            CollectorSession(gpu_backend, config).start(FIELDS)

        assert gpu_backend.calls["create_group"] == 0

    def test_backend_failure_leaves_nothing(self, switch_backend):
        """A failed watch releases every group and field group of the session."""
        switch_backend.fail("watch_field_group", after=1)
        session = CollectorSession(switch_backend, make_config("link"))

        with pytest.raises(BackendError):
            session.start(FIELDS)

        assert resources(switch_backend) == (0, 0, 0)
        with pytest.raises(RuntimeError):
            session.topology
        session.close()

    def test_core_groups_follow_limit(self, cpu_backend):
        """Cores are batched by the configured group limit."""
        config = Config(collector=CollectorConfig(entity_group="cpu_core", max_group_entities=2))

        targets = CollectorSession(cpu_backend, config).start(FIELDS)

        assert len(targets) == 6
        assert [len(m) for m in cpu_backend.groups.values()] == [2, 2, 2]
        assert len(cpu_backend.watches) == 3

    def test_metrics_recorded(self, switch_backend, metrics_registry, collector_registry):
        session = CollectorSession(switch_backend, make_config("link"), metrics=metrics_registry)

        session.start(FIELDS)

        assert collector_registry.get_sample_value(
            "collector_monitored_entities", {"entity_group": "link"}
        ) == 2.0
        assert collector_registry.get_sample_value(
            "collector_topology_entities", {"entity_group": "switch"}
        ) == 2.0
        assert collector_registry.get_sample_value("collector_watch_groups_created_total") == 2.0


@pytest.mark.integration
class TestContainer:
    """Test dependency wiring."""

    @staticmethod
    def patched(config, metrics):
        base = "gpu_collector.infrastructure.container"
        return (
            patch(f"{base}.get_config", return_value=config),
            patch(f"{base}.setup_logging", return_value=MagicMock()),
            patch(f"{base}.setup_tracing", return_value=trace.get_tracer("test")),
            patch(f"{base}.setup_metrics", return_value=metrics),
            patch(f"{base}.get_metrics", return_value=metrics),
        )

    def test_creates_sessions(self, gpu_backend, metrics_registry):
        config = make_config()
        get_cfg, logging_, tracing, setup_metrics, _ = self.patched(config, metrics_registry)
        with get_cfg, logging_, tracing, setup_metrics as serve:
            container = Container.create()

            assert get_container() is container
            assert container.config is config
            serve.assert_called_once_with(9400)

            session = container.create_session(gpu_backend)
            session.start(FIELDS)

        assert isinstance(session, CollectorSession)
        assert resources(gpu_backend) == (1, 1, 1)
        session.close()

    def test_publishes_collector_info(self, metrics_registry, collector_registry):
        config = Config(collector=CollectorConfig(entity_group="cpu_core"))
        get_cfg, logging_, tracing, setup_metrics, _ = self.patched(config, metrics_registry)
        with get_cfg, logging_, tracing, setup_metrics:
            Container.create()

        assert collector_registry.get_sample_value(
            "gpu_collector_info",
            {"version": "0.1.0", "entity_group": "cpu_core", "environment": "development"},
        ) == 1.0

    def test_metrics_endpoint_disabled(self, metrics_registry):
        """Without a metrics port no HTTP endpoint is started."""
        config = Config(observability=ObservabilityConfig(metrics_port=None))
        get_cfg, logging_, tracing, setup_metrics, get_metrics = self.patched(config, metrics_registry)
        with get_cfg, logging_, tracing, setup_metrics as serve, get_metrics as cached:
            container = Container.create()

        serve.assert_not_called()
        cached.assert_called_once_with()
        assert container.metrics is metrics_registry

    def test_reset(self, metrics_registry):
        get_cfg, logging_, tracing, setup_metrics, _ = self.patched(make_config(), metrics_registry)
        with get_cfg, logging_, tracing, setup_metrics:
            first = Container.create()
            Container.reset()
            assert Container.create() is not first


@pytest.mark.integration
class TestSessionMetricLabels:
    """Test that both entity gauges use the configured class names."""

    def test_gpu_instance_labels(self, gpu_backend, metrics_registry, collector_registry):
        session = CollectorSession(gpu_backend, make_config("gpu_instance"), metrics=metrics_registry)

        session.start(FIELDS)

        assert collector_registry.get_sample_value(
            "collector_monitored_entities", {"entity_group": "gpu_instance"}
        ) == 2.0
        assert collector_registry.get_sample_value(
            "collector_topology_entities", {"entity_group": "gpu_instance"}
        ) == 1.0
        assert collector_registry.get_sample_value(
            "collector_topology_entities", {"entity_group": "gpu"}
        ) == 2.0

    def test_cpu_core_labels(self, cpu_backend, metrics_registry, collector_registry):
        session = CollectorSession(cpu_backend, make_config("cpu_core"), metrics=metrics_registry)

        session.start(FIELDS)

        for name in ("collector_monitored_entities", "collector_topology_entities"):
            assert collector_registry.get_sample_value(name, {"entity_group": "cpu_core"}) == 6.0

"""Unit tests for collector configuration."""

import pytest
from pydantic import ValidationError

from gpu_collector.domain.value_objects.device_filter import DeviceFilter
from gpu_collector.domain.value_objects.identifiers import GROUP_MAX_ENTITIES, EntityGroup
from gpu_collector.infrastructure.config import (
    CollectorConfig,
    Config,
    FilterConfig,
    ObservabilityConfig,
)


@pytest.mark.unit
class TestConfig:
    """Test configuration loading and validation."""

    def test_filter_defaults(self):
        """Filters default to flexible mode."""
        config = FilterConfig()
        assert config.flex is True
        assert config.major == [-1]
        assert config.minor == [-1]
        assert config.to_filter() == DeviceFilter.flexible()

    def test_explicit_filter(self):
        config = FilterConfig(flex=False, major=[0, 2], minor=[])
        assert config.to_filter() == DeviceFilter.of([0, 2], [])

    def test_rejects_ids_below_sentinel(self):
        with pytest.raises(ValidationError):
            FilterConfig(flex=False, major=[-2])

    def test_collector_defaults(self):
        config = CollectorConfig()
        assert config.entity_group == "gpu"
        assert config.requested_entity_group == EntityGroup.GPU
        assert config.collect_interval_ms == 30000
        assert config.max_group_entities == GROUP_MAX_ENTITIES
        assert config.use_fake_gpus is False

    @pytest.mark.parametrize("name,group", [
        ("gpu_instance", EntityGroup.GPU_I),
        ("switch", EntityGroup.SWITCH),
        ("link", EntityGroup.LINK),
        ("cpu", EntityGroup.CPU),
        ("cpu_core", EntityGroup.CPU_CORE),
    ])
    def test_entity_group_names(self, name, group):
        assert CollectorConfig(entity_group=name).requested_entity_group == group

    def test_rejects_unknown_entity_group(self):
        with pytest.raises(ValidationError):
            CollectorConfig(entity_group="vgpu")

    def test_rejects_zero_group_limit(self):
        with pytest.raises(ValidationError):
            CollectorConfig(max_group_entities=0)

    def test_observability_defaults(self):
        config = ObservabilityConfig()
        assert config.log_format == "json"
        assert config.otel_endpoint is None
        assert config.metrics_port == 9400

    def test_environment_overrides(self, monkeypatch):
        """Nested settings are read from prefixed environment variables."""
        monkeypatch.setenv("GPU_COLLECTOR_COLLECTOR__ENTITY_GROUP", "link")
        monkeypatch.setenv("GPU_COLLECTOR_SWITCH_FILTER__FLEX", "false")

        config = Config()

        assert config.collector.requested_entity_group == EntityGroup.LINK
        assert config.switch_filter.to_filter() == DeviceFilter.of([-1], [-1])

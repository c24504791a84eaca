"""Configuration for the GPU collector."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gpu_collector.domain.value_objects.device_filter import ALL_IDS, DeviceFilter
from gpu_collector.domain.value_objects.identifiers import GROUP_MAX_ENTITIES, EntityGroup

_ENTITY_GROUPS: dict[str, EntityGroup] = {
    "gpu": EntityGroup.GPU,
    "gpu_instance": EntityGroup.GPU_I,
    "switch": EntityGroup.SWITCH,
    "link": EntityGroup.LINK,
    "cpu": EntityGroup.CPU,
    "cpu_core": EntityGroup.CPU_CORE,
}


class FilterConfig(BaseModel):
    """Inclusion filter for one entity class."""

    flex: bool = Field(default=True, description="Monitor everything available")
    major: list[int] = Field(default_factory=lambda: [ALL_IDS], description="GPU, switch or CPU IDs")
    minor: list[int] = Field(default_factory=lambda: [ALL_IDS], description="Instance, link or core IDs")

    @field_validator("major", "minor")
    @classmethod
    def _check_ids(cls, ids: list[int]) -> list[int]:
        for entity_id in ids:
            if entity_id < ALL_IDS:
                raise ValueError(f"invalid entity ID {entity_id}, expected {ALL_IDS} or a non-negative ID")
        return ids

    def to_filter(self) -> DeviceFilter:
        if self.flex:
            return DeviceFilter.flexible()
        return DeviceFilter.of(self.major, self.minor)


class CollectorConfig(BaseModel):
    """Topology and watch configuration."""

    entity_group: Literal["gpu", "gpu_instance", "switch", "link", "cpu", "cpu_core"] = Field(default="gpu")
    use_fake_gpus: bool = Field(default=False)
    collect_interval_ms: int = Field(default=30000, ge=1)
    max_group_entities: int = Field(default=GROUP_MAX_ENTITIES, ge=1)
    max_keep_age_seconds: float = Field(default=0.0, ge=0.0)
    max_keep_samples: int = Field(default=1, ge=0)
    no_hostname: bool = Field(default=False)

    @property
    def requested_entity_group(self) -> EntityGroup:
        return _ENTITY_GROUPS[self.entity_group]


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")
    otel_endpoint: str | None = Field(default=None)
    metrics_port: int | None = Field(default=9400, ge=1, le=65535, description="Prometheus port; None disables the HTTP endpoint")
    environment: str = Field(default="development")


class Config(BaseSettings):
    """Main configuration."""

    model_config = SettingsConfigDict(env_prefix="GPU_COLLECTOR_", env_nested_delimiter="__")

    gpu_filter: FilterConfig = Field(default_factory=FilterConfig)
    switch_filter: FilterConfig = Field(default_factory=FilterConfig)
    cpu_filter: FilterConfig = Field(default_factory=FilterConfig)
    collector: CollectorConfig = Field(default_factory=CollectorConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache
def get_config() -> Config:
    return Config()

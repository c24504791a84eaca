"""Monitoring resolver: the ordered list of entities to watch.

Resolution is a pure function of the topology and its filters, dispatched
on the topology's entity class. GPU classes are planned first as a list of
GPUResolution entries, each deciding whether a GPU is watched as a whole
device or through a set of its instances, then expanded into targets.

Note: a non-flexible GPU filter can select the same GPU both as a whole
device (major list) and through its instances (minor list). Both are kept
and the overlap is logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from gpu_collector.domain.entities.monitoring import MonitoringTarget
from gpu_collector.domain.entities.topology import GPU, GPUInstance, Topology
from gpu_collector.domain.services.filter_policy import EntityNotFoundError, FilterPolicy
from gpu_collector.domain.value_objects.identifiers import EntityGroup, EntityPair

logger = logging.getLogger(__name__)


class GPUResolutionMode(Enum):
    """How a GPU is monitored."""
    WHOLE_DEVICE = "whole_device"
    SUB_PARTITIONS = "sub_partitions"


@dataclass(frozen=True)
class GPUResolution:
    """One planned GPU selection."""
    gpu: GPU
    mode: GPUResolutionMode
    instances: tuple[GPUInstance, ...] = field(default=())

    def targets(self) -> list[MonitoringTarget]:
        if self.mode == GPUResolutionMode.WHOLE_DEVICE:
            return [gpu_target(self.gpu)]
        return [gpu_instance_target(self.gpu, instance) for instance in self.instances]


def gpu_target(gpu: GPU) -> MonitoringTarget:
    return MonitoringTarget(
        entity=EntityPair(EntityGroup.GPU, gpu.gpu_id),
        device_info=gpu.device_info,
    )


def gpu_instance_target(gpu: GPU, instance: GPUInstance) -> MonitoringTarget:
    return MonitoringTarget(
        entity=EntityPair(EntityGroup.GPU_I, instance.entity_id),
        device_info=gpu.device_info,
        instance=instance,
    )


class MonitoringResolver:
    """Resolve monitoring targets for a topology."""

    def __init__(self, topology: Topology) -> None:
        self._topology = topology
        self._policy = FilterPolicy(topology)

    def resolve(self) -> list[MonitoringTarget]:
        """Return the targets for the topology's entity class, in stable order."""
        group = self._topology.entity_group
        if group == EntityGroup.SWITCH:
            targets = self.switches_to_monitor()
        elif group == EntityGroup.LINK:
            targets = self.links_to_monitor()
        elif group == EntityGroup.CPU:
            targets = self.cpus_to_monitor()
        elif group == EntityGroup.CPU_CORE:
            targets = self.cpu_cores_to_monitor()
        else:
            targets = [t for resolution in self.plan_gpus() for t in resolution.targets()]

        logger.debug(f"Resolved {len(targets)} {group.name} targets")
        return targets

    def switches_to_monitor(self) -> list[MonitoringTarget]:
        return [
            MonitoringTarget(entity=EntityPair(EntityGroup.SWITCH, sw.entity_id))
            for sw in self._topology.switches
            if self._policy.is_switch_watched(sw.entity_id)
        ]

    def links_to_monitor(self) -> list[MonitoringTarget]:
        targets = []
        for sw in self._topology.switches:
            if not self._policy.is_switch_watched(sw.entity_id):
                continue
            for link in sw.links:
                if not self._policy.is_link_monitored(link, sw.entity_id):
                    continue
                targets.append(MonitoringTarget(
                    entity=EntityPair(EntityGroup.LINK, link.index),
                    parent_id=link.parent_id,
                ))
        return targets

    def cpus_to_monitor(self) -> list[MonitoringTarget]:
        return [
            MonitoringTarget(entity=EntityPair(EntityGroup.CPU, cpu.entity_id))
            for cpu in self._topology.cpus
            if self._policy.is_cpu_watched(cpu.entity_id)
        ]

    def cpu_cores_to_monitor(self) -> list[MonitoringTarget]:
        targets = []
        for cpu in self._topology.cpus:
            if not self._policy.is_cpu_watched(cpu.entity_id):
                continue
            for core in cpu.cores:
                if not self._policy.is_core_watched(core, cpu.entity_id):
                    continue
                targets.append(MonitoringTarget(
                    entity=EntityPair(EntityGroup.CPU_CORE, core),
                    parent_id=cpu.entity_id,
                ))
        return targets

    # ------------------------------------------------------------------
    # GPUs
    # ------------------------------------------------------------------

    def plan_gpus(self) -> list[GPUResolution]:
        """Decide how each selected GPU is monitored."""
        opts = self._topology.gpu_filter
        gpus = self._topology.gpus

        if opts.flex:
            plan = []
            for gpu in gpus:
                if gpu.gpu_instances:
                    plan.append(GPUResolution(gpu, GPUResolutionMode.SUB_PARTITIONS, tuple(gpu.gpu_instances)))
                else:
                    plan.append(GPUResolution(gpu, GPUResolutionMode.WHOLE_DEVICE))
            return plan

        plan = []
        if opts.all_major:
            plan.extend(GPUResolution(gpu, GPUResolutionMode.WHOLE_DEVICE) for gpu in gpus)
        else:
            for gpu_id in opts.major:
                gpu = self._topology.find_gpu(gpu_id)
                if gpu is None:
                    raise EntityNotFoundError("GPU ID", gpu_id)
                plan.append(GPUResolution(gpu, GPUResolutionMode.WHOLE_DEVICE))

        if opts.all_minor:
            plan.extend(
                GPUResolution(gpu, GPUResolutionMode.SUB_PARTITIONS, tuple(gpu.gpu_instances))
                for gpu in gpus
                if gpu.gpu_instances
            )
        else:
            for instance_id in opts.minor:
                found = self._topology.find_gpu_instance(instance_id)
                if found is None:
                    raise EntityNotFoundError("GPU instance ID", instance_id)
                gpu, instance = found
                plan.append(GPUResolution(gpu, GPUResolutionMode.SUB_PARTITIONS, (instance,)))

        overlap = overlapping_gpus(plan)
        if overlap:
            logger.warning(
                f"GPUs {overlap} are monitored both as whole devices and through GPU instances"
            )
        return plan


def overlapping_gpus(plan: list[GPUResolution]) -> list[int]:
    """GPU IDs selected both as whole devices and through instances."""
    whole = {r.gpu.gpu_id for r in plan if r.mode == GPUResolutionMode.WHOLE_DEVICE}
    partitioned = {r.gpu.gpu_id for r in plan if r.mode == GPUResolutionMode.SUB_PARTITIONS}
    return sorted(whole & partitioned)

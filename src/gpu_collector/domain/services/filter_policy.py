"""Filter policy: presence verification and membership testing.

Presence verification runs once, right after the topology is built, and
fails fast when a filter names an ID the hardware does not have. Membership
tests are used repeatedly by the resolver and the watch provisioner and
never re-check presence.
"""

from __future__ import annotations

from gpu_collector.domain.entities.topology import Link, Topology, TopologyError
from gpu_collector.domain.value_objects.device_filter import DeviceFilter
from gpu_collector.domain.value_objects.identifiers import EntityGroup


class EntityNotFoundError(TopologyError):
    """A filter requested an entity that is not in the topology."""

    def __init__(self, entity_class: str, entity_id: int) -> None:
        self.entity_class = entity_class
        self.entity_id = entity_id
        super().__init__(f"couldn't find requested {entity_class} '{entity_id}'")


class FilterPolicy:
    """Applies the topology's filters to its entities."""

    def __init__(self, topology: Topology) -> None:
        self._topology = topology

    @property
    def gpu_filter(self) -> DeviceFilter:
        return self._topology.gpu_filter

    @property
    def switch_filter(self) -> DeviceFilter:
        return self._topology.switch_filter

    @property
    def cpu_filter(self) -> DeviceFilter:
        return self._topology.cpu_filter

    # ------------------------------------------------------------------
    # Presence verification
    # ------------------------------------------------------------------

    def verify_presence(self) -> None:
        """Verify the filter of the topology's entity class.

        Raises:
            EntityNotFoundError: If an explicitly requested ID is missing.
        """
        group = self._topology.entity_group
        if group in (EntityGroup.SWITCH, EntityGroup.LINK):
            self.verify_switch_presence()
        elif group in (EntityGroup.CPU, EntityGroup.CPU_CORE):
            self.verify_cpu_presence()
        else:
            self.verify_gpu_presence()

    def verify_gpu_presence(self) -> None:
        for gpu_id in self.gpu_filter.explicit_major():
            if not self._topology.gpu_id_exists(gpu_id):
                raise EntityNotFoundError("GPU ID", gpu_id)

        for instance_id in self.gpu_filter.explicit_minor():
            if not self._topology.gpu_instance_id_exists(instance_id):
                raise EntityNotFoundError("GPU instance ID", instance_id)

    def verify_switch_presence(self) -> None:
        for switch_id in self.switch_filter.explicit_major():
            if not self._topology.switch_id_exists(switch_id):
                raise EntityNotFoundError("NvSwitch ID", switch_id)

        for link_id in self.switch_filter.explicit_minor():
            if not self._topology.link_id_exists(link_id):
                raise EntityNotFoundError("NvLink", link_id)

    def verify_cpu_presence(self) -> None:
        for cpu_id in self.cpu_filter.explicit_major():
            if not self._topology.cpu_id_exists(cpu_id):
                raise EntityNotFoundError("CPU ID", cpu_id)

        for core_id in self.cpu_filter.explicit_minor():
            if not self._topology.cpu_core_id_exists(core_id):
                raise EntityNotFoundError("CPU core", core_id)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def is_switch_watched(self, switch_id: int) -> bool:
        opts = self.switch_filter
        if opts.flex or opts.all_major:
            return True
        return switch_id in opts.major

    def is_link_watched(self, link_index: int, switch_id: int) -> bool:
        """Check a link against the minor list of its (watched) switch."""
        opts = self.switch_filter
        if opts.flex:
            return True

        sw = self._topology.find_switch(switch_id)
        if sw is None or not self.is_switch_watched(switch_id):
            return False

        if opts.all_minor:
            return True

        if not any(link.index == link_index for link in sw.links):
            return False
        return link_index in opts.minor

    def is_link_monitored(self, link: Link, switch_id: int) -> bool:
        """A link is monitored only while it is up and passes the filter."""
        return link.is_up and self.is_link_watched(link.index, switch_id)

    def is_cpu_watched(self, cpu_id: int) -> bool:
        if not self._topology.cpu_id_exists(cpu_id):
            return False

        opts = self.cpu_filter
        if opts.flex or opts.all_major:
            return True
        return cpu_id in opts.major

    def is_core_watched(self, core_id: int, cpu_id: int) -> bool:
        opts = self.cpu_filter
        if opts.flex:
            return True

        if not self.is_cpu_watched(cpu_id):
            return False

        if opts.all_minor:
            return True
        return core_id in opts.minor

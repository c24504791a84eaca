"""Per-class inclusion filters.

A filter either monitors everything available (flexible mode) or lists
explicit IDs at two levels: major (GPU, switch, CPU) and minor
(GPU instance, link, core). A list whose first element is ``ALL_IDS``
selects every ID at that level; the rest of such a list is ignored.
"""

from __future__ import annotations

from dataclasses import dataclass

ALL_IDS = -1


def _selects_all(ids: tuple[int, ...]) -> bool:
    return len(ids) > 0 and ids[0] == ALL_IDS


@dataclass(frozen=True)
class DeviceFilter:
    """Inclusion filter for one entity class."""
    flex: bool = False
    major: tuple[int, ...] = ()
    minor: tuple[int, ...] = ()

    @classmethod
    def flexible(cls) -> DeviceFilter:
        """Filter that monitors everything available."""
        return cls(flex=True)

    @classmethod
    def of(cls, major: list[int] | tuple[int, ...] = (), minor: list[int] | tuple[int, ...] = ()) -> DeviceFilter:
        """Non-flexible filter from explicit ID lists."""
        return cls(flex=False, major=tuple(major), minor=tuple(minor))

    @property
    def all_major(self) -> bool:
        """Major list holds the all-IDs sentinel."""
        return _selects_all(self.major)

    @property
    def all_minor(self) -> bool:
        """Minor list holds the all-IDs sentinel."""
        return _selects_all(self.minor)

    def explicit_major(self) -> tuple[int, ...]:
        """Major IDs that must exist in the topology (none for flex or sentinel)."""
        if self.flex or self.all_major:
            return ()
        return self.major

    def explicit_minor(self) -> tuple[int, ...]:
        """Minor IDs that must exist in the topology (none for flex or sentinel)."""
        if self.flex or self.all_minor:
            return ()
        return self.minor

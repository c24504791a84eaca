"""Ordered acquire/release bookkeeping for multi-resource provisioning.

Every successfully acquired backend resource pushes its release action
onto a CleanupStack. If a later step fails, the stack unwinds in reverse
acquisition order; on success the caller takes ownership of the actions
with pop_all() and runs them at teardown.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import TracebackType
from typing import Callable, Iterable, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CleanupAction:
    """Named release of one backend resource."""
    name: str
    release: Callable[[], None]

    def __call__(self) -> None:
        self.release()


def run_cleanups(actions: Iterable[CleanupAction]) -> None:
    """Run release actions in order, logging any that fail.

    Release actions are expected to handle backend errors themselves;
    anything that still escapes is logged so teardown always completes.
    """
    for action in actions:
        try:
            action()
        except Exception as e:
            logger.warning(f"Cleanup of {action.name} failed: {e}")


class CleanupStack:
    """Stack of release actions for resources acquired so far.

    Example:
        with CleanupStack() as stack:
            group = stack.acquire("group", create, destroy)
            ...
            cleanups = stack.pop_all()
    """

    def __init__(self) -> None:
        self._actions: list[CleanupAction] = []

    def __len__(self) -> int:
        return len(self._actions)

    @property
    def actions(self) -> list[CleanupAction]:
        """Pending actions in acquisition order."""
        return list(self._actions)

    def push(self, name: str, release: Callable[[], None]) -> CleanupAction:
        """Register the release of an already acquired resource."""
        action = CleanupAction(name=name, release=release)
        self._actions.append(action)
        return action

    def acquire(self, name: str, acquire: Callable[[], T], release: Callable[[T], None]) -> T:
        """Acquire a resource and register its release.

        Nothing is registered if ``acquire`` raises.
        """
        resource = acquire()
        self.push(name, lambda: release(resource))
        return resource

    def unwind(self) -> None:
        """Release every pending resource, newest first."""
        actions, self._actions = self._actions, []
        run_cleanups(reversed(actions))

    def pop_all(self) -> list[CleanupAction]:
        """Hand the pending actions to the caller, in release order."""
        actions, self._actions = self._actions, []
        actions.reverse()
        return actions

    def __enter__(self) -> CleanupStack:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        if exc_type is not None:
            self.unwind()

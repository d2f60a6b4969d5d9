#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from loguru import logger

from gette.types import Getter, SourceLocator


@dataclass(frozen=True)
class GetterRegistration:
    getter: Getter
    priority: int
    order: int
    """Insertion index, breaks ties between equal priorities."""


class Registry:
    """Priority-ordered set of getters.

    Selection walks registrations by descending priority, then insertion order, and
    returns the first getter whose `matches` accepts the locator. Overlapping getters
    are allowed: the earlier one shadows the later one.

    Registration is meant to happen before downloads start; it is not synchronized
    with concurrent `select` calls.
    """

    def __init__(self) -> None:
        self._registrations: list[GetterRegistration] = []
        self._counter = 0

    def register(self, getter: Getter, priority: int = 0) -> GetterRegistration:
        for registration in self._registrations:
            if registration.getter is getter:
                return registration
        registration = GetterRegistration(getter=getter, priority=priority, order=self._counter)
        self._counter += 1
        self._registrations.append(registration)
        self._registrations.sort(key=lambda entry: (-entry.priority, entry.order))
        logger.debug(f"Registered getter {getter.name!r} (priority={priority})")
        return registration

    def select(self, locator: SourceLocator) -> Getter | None:
        for registration in self._registrations:
            if registration.getter.matches(locator):
                return registration.getter
        return None

    @property
    def registrations(self) -> list[GetterRegistration]:
        """Registrations in selection order."""
        return list(self._registrations)

    def __len__(self) -> int:
        return len(self._registrations)


@lru_cache(maxsize=1)
def default_registry() -> Registry:
    """Process-wide registry, built once with every built-in getter at priority 0."""
    from gette.getters import builtin_getters

    registry = Registry()
    for getter in builtin_getters():
        registry.register(getter)
    return registry


def register(getter: Getter, priority: int = 0) -> GetterRegistration:
    """Add a getter to the process-wide registry."""
    return default_registry().register(getter, priority=priority)

"""Service container — lazily built, cached services for one process."""

from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Maps a service name to a factory and caches what the factory builds.

    ``get`` never raises for an unknown name: it logs a warning and
    returns None, leaving the caller to treat the absence as a failure.
    """

    def __init__(self) -> None:
        self._instances: dict[str, Any] = {}
        self._factories: dict[str, Callable[[], Any]] = {}

    def register(self, name: str, factory: Callable[[], Any]) -> None:
        """Register (or replace) the factory for *name*.

        Replacing a factory drops any instance the old one built.
        """
        self._factories[name] = factory
        self._instances.pop(name, None)

    def get(self, name: str) -> Any | None:
        if name in self._instances:
            return self._instances[name]

        factory = self._factories.get(name)
        if factory is not None:
            instance = factory()
            if instance is not None:
                self._instances[name] = instance
                return instance

        logger.warning("Service not found: %s", name)
        return None

    def cached(self, name: str) -> Any | None:
        """The instance already built for *name*, without building one."""
        return self._instances.get(name)

    def has(self, name: str) -> bool:
        return name in self._factories or name in self._instances

    def clear(self) -> None:
        """Drop every instance and factory (test isolation)."""
        self._instances.clear()
        self._factories.clear()

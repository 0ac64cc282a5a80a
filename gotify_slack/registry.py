"""
Notifier registry.

Notifier classes register themselves under the type name used in the
configuration file; the daemon and CLI build instances by that name.
"""

import importlib
from collections.abc import Callable
from typing import Any

from gotify_slack.core import Notifier

BUILTIN_NOTIFIERS_PACKAGE = "gotify_slack.notifiers"


class NotifierRegistry:
    """Maps configuration type names to notifier classes."""

    def __init__(self) -> None:
        self._classes: dict[str, type[Notifier]] = {}

    def register(self, type_name: str, cls: type[Notifier]) -> None:
        existing = self._classes.get(type_name)
        if existing is not None and existing is not cls:
            raise ValueError(
                f"Notifier type '{type_name}' is already registered to {existing.__name__}"
            )
        self._classes[type_name] = cls

    def get(self, type_name: str) -> type[Notifier]:
        try:
            return self._classes[type_name]
        except KeyError:
            raise ValueError(f"Unknown notifier type: {type_name}") from None

    def names(self) -> list[str]:
        return sorted(self._classes)

    def create(self, type_name: str, config: dict[str, Any]) -> Notifier:
        """Instantiate the notifier registered as type_name."""
        return self.get(type_name)(config)


_registry = NotifierRegistry()


def register_notifier(type_name: str) -> Callable[[type[Notifier]], type[Notifier]]:
    """Class decorator registering a notifier under type_name."""
    def decorator(cls: type[Notifier]) -> type[Notifier]:
        _registry.register(type_name, cls)
        return cls
    return decorator


def get_registry() -> NotifierRegistry:
    """Return the registry with the built-in notifiers loaded."""
    importlib.import_module(BUILTIN_NOTIFIERS_PACKAGE)
    return _registry


def create_notifier(type_name: str, config: dict[str, Any]) -> Notifier:
    """Build a notifier from a configuration entry."""
    return get_registry().create(type_name, config)

"""
Built-in notifiers.

Every module in this package is imported on first use of the package so
that its @register_notifier classes end up in the registry. The classes are
re-exported here by name.
"""

import importlib
import pkgutil

from gotify_slack.core import Notifier
from gotify_slack.logging_config import get_logger

logger = get_logger(__name__)

__all__: list[str] = []


def _notifier_classes(module: object) -> list[type[Notifier]]:
    module_name = getattr(module, "__name__", "")
    return [
        obj for obj in vars(module).values()
        if isinstance(obj, type)
        and issubclass(obj, Notifier)
        and obj.__module__ == module_name
    ]


for _module_info in pkgutil.iter_modules(__path__):
    _module = importlib.import_module(f"{__name__}.{_module_info.name}")
    _classes = _notifier_classes(_module)
    if not _classes:
        logger.warning("Module '%s' defines no notifier", _module_info.name)
    for _cls in _classes:
        globals()[_cls.__name__] = _cls
        __all__.append(_cls.__name__)

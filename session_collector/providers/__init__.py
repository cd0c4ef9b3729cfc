"""Collector registry and built-in source discovery."""

import threading
from typing import Callable, Optional, Type

from ..config import SourceConfig
from ..errors import UnknownSourceError
from .base import SessionCollector

CollectorConstructor = Callable[[Optional[SourceConfig]], SessionCollector]

# Built-in collector classes, in registration order
_BUILTINS: list[Type[SessionCollector]] = []


def register_builtin(collector_class: Type[SessionCollector]) -> Type[SessionCollector]:
    """Decorator marking a collector class for inclusion in default registries."""
    _BUILTINS.append(collector_class)
    return collector_class


class CollectorRegistry:
    """Maps source ids to collector constructors.

    Register everything at startup; lookups are safe from any thread after
    that.
    """

    def __init__(self):
        self._constructors: dict[str, CollectorConstructor] = {}
        self._lock = threading.Lock()

    def register(self, source: str, constructor: CollectorConstructor) -> None:
        with self._lock:
            self._constructors[source] = constructor

    def is_registered(self, source: str) -> bool:
        return source in self._constructors

    def get_collector(self, source: str, config: Optional[SourceConfig] = None) -> SessionCollector:
        constructor = self._constructors.get(source)
        if constructor is None:
            raise UnknownSourceError(source)
        return constructor(config)

    def list_registered_sources(self) -> list[str]:
        return sorted(self._constructors)


def build_default_registry() -> CollectorRegistry:
    """Fresh registry holding every built-in collector."""
    registry = CollectorRegistry()
    for collector_class in _BUILTINS:
        registry.register(collector_class.name, collector_class)
    return registry


# Import collectors to trigger registration
from . import claude_code  # noqa: F401, E402
from . import gemini  # noqa: F401, E402
from . import amazon_q  # noqa: F401, E402

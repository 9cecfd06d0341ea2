# fastapi_advanced_filters/registry.py

import logging
import threading
from typing import Dict, Generic, Iterator, Type, TypeVar

from .definitions import FilterDefinition, SortDefinition
from .errors import DuplicateKeyError, FilterError, UnknownFilterError, UnknownSortError

logger = logging.getLogger(__name__)

D = TypeVar("D", FilterDefinition, SortDefinition)


class Registry(Generic[D]):
    """
    Ordered key -> definition map.

    Registration is serialized by a lock so that lazily built registries
    can't race on the duplicate check. Lookups take no lock: once frozen,
    a registry is never mutated again.
    """

    name = "registry"
    unknown_error: Type[FilterError] = FilterError

    def __init__(self, definitions=()):
        self._definitions: Dict[str, D] = {}
        self._lock = threading.Lock()
        self._frozen = False
        for definition in definitions:
            self.register(definition)

    def register(self, definition: D) -> D:
        with self._lock:
            if self._frozen:
                raise RuntimeError(f"{self.name} is frozen, '{definition.key}' can't be registered")
            if definition.key in self._definitions:
                raise DuplicateKeyError(definition.key, self.name)
            self._definitions[definition.key] = definition
        logger.debug("Registered %s '%s'", self.name, definition.key)
        return definition

    def lookup(self, key: str) -> D:
        try:
            return self._definitions[key]
        except KeyError:
            raise self.unknown_error(key) from None

    def list(self) -> Iterator[D]:
        # snapshot while registration is still open
        values = self._definitions.values()
        return iter(values if self._frozen else tuple(values))

    def freeze(self) -> None:
        with self._lock:
            self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, key) -> bool:
        return key in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[D]:
        return self.list()


class FilterRegistry(Registry[FilterDefinition]):
    name = "filter registry"
    unknown_error = UnknownFilterError


class SortRegistry(Registry[SortDefinition]):
    name = "sort registry"
    unknown_error = UnknownSortError

# fastapi_advanced_filters/repository.py

from typing import Any, Callable, Dict, Iterable, Optional

from .definitions import FilterDefinition, SortDefinition, advanced_filter, always
from .registry import FilterRegistry, SortRegistry

MATCH_TYPES = ("text", "string", "int", "integer", "bool", "boolean", "array")


class Repository:
    """
    Everything a resource declares about how it can be filtered.

    Build one per resource when the application starts, register filters
    and sorts, then hand it to `FilterSortBuilder` / `filters_router`, which
    freeze it. After that it is only read.

        posts = Repository(
            Post,
            filters=[advanced_filter("ready-posts", ready_posts)],
            sorts=["id", "user.attributes.name"],
            matches={"title": "text", "id": "int"},
            searchables=["title", "body"],
        )
    """

    def __init__(
        self,
        model: Any,
        filters: Iterable[FilterDefinition] = (),
        sorts: Iterable[SortDefinition | str] = (),
        matches: Optional[Dict[str, str]] = None,
        searchables: Iterable[str] = (),
    ):
        self.model = model
        self.filters = FilterRegistry(filters)
        self.sorts = SortRegistry(_sort_definition(sort) for sort in sorts)
        self.matches = dict(matches or {})
        self.searchables = tuple(searchables)
        for name, match_type in self.matches.items():
            if match_type not in MATCH_TYPES:
                raise ValueError(f"Unknown match type '{match_type}' for '{name}'")
        if self.matches or self.searchables:
            columns = self.model.__table__.columns
            for name in (*self.matches, *self.searchables):
                if name not in columns:
                    raise ValueError(f"'{name}' is not a column of '{self.name}'")

    def add_filter(self, definition: FilterDefinition) -> FilterDefinition:
        return self.filters.register(definition)

    def add_sort(self, definition: SortDefinition | str) -> SortDefinition:
        return self.sorts.register(_sort_definition(definition))

    def filter(self, key: str, rules: Optional[Dict[str, Any]] = None, can_see: Callable[[Any], bool] = always, title: Optional[str] = None):
        """Register the decorated function as an advanced filter's apply function."""
        def decorator(apply):
            self.add_filter(advanced_filter(key, apply, rules=rules, can_see=can_see, title=title))
            return apply
        return decorator

    def sort(self, key: str, title: Optional[str] = None):
        """Register the decorated function as the transform of sort `key`."""
        def decorator(transform):
            self.add_sort(SortDefinition(key=key, transform=transform, title=title))
            return transform
        return decorator

    def freeze(self) -> "Repository":
        self.filters.freeze()
        self.sorts.freeze()
        return self

    @property
    def name(self) -> str:
        return getattr(self.model, "__tablename__", None) or getattr(self.model, "__name__", "resource")


def _sort_definition(sort: SortDefinition | str) -> SortDefinition:
    return sort if isinstance(sort, SortDefinition) else SortDefinition(key=sort)

# fastapi_advanced_filters/definitions.py

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from sqlalchemy.sql import Select

from .kinds import TIMESTAMP_OPERATORS, FilterKind, default_applier, option_entries
from .values import FilterValue

KEY_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")

# the literal middle segment of a relation-qualified key: post.attributes.title
RELATION_SEGMENT = "attributes"

ApplyFunction = Callable[[Select, FilterValue], Select]
SortTransform = Callable[[Select, "SortDirection"], Select]


def always(context: Any) -> bool:
    return True


def title_from_key(key: str) -> str:
    return re.sub(r"[-_.]+", " ", key).strip().capitalize()


def split_relation_path(path: str) -> Optional[Tuple[str, str]]:
    """Return (relation, column) for "relation.attributes.column", else None."""
    segments = path.split(".")
    if len(segments) == 3 and segments[1] == RELATION_SEGMENT and segments[0] and segments[2]:
        return segments[0], segments[2]
    return None


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True, eq=False)
class FilterDefinition:
    key: str
    kind: FilterKind = FilterKind.ADVANCED
    apply: Optional[ApplyFunction] = None
    rules: Mapping[str, Any] = field(default_factory=dict)
    can_see: Callable[[Any], bool] = always
    options: Sequence[Tuple[str, Any]] = ()
    title: Optional[str] = None
    column: Any = None
    operator: str = "eq"

    def __post_init__(self):
        if not isinstance(self.key, str) or not KEY_PATTERN.match(self.key):
            raise ValueError(f"Filter key '{self.key}' must be kebab-case, e.g. 'ready-posts'")
        object.__setattr__(self, "kind", FilterKind(self.kind))
        object.__setattr__(self, "options", tuple(option_entries(self.options)))
        object.__setattr__(self, "rules", dict(self.rules or {}))
        if self.title is None:
            object.__setattr__(self, "title", title_from_key(self.key))
        if self.operator not in TIMESTAMP_OPERATORS:
            raise ValueError(f"Unsupported operator '{self.operator}' for filter '{self.key}'")
        if self.kind in (FilterKind.SELECT, FilterKind.BOOLEAN) and not self.options:
            raise ValueError(f"{self.kind.value} filter '{self.key}' needs options")
        if self.apply is None:
            applier = default_applier(self)
            if applier is None:
                raise ValueError(f"Filter '{self.key}' needs an apply function or a column")
            object.__setattr__(self, "apply", applier)

    def catalog_options(self) -> list:
        return [{"label": label, "value": value} for label, value in self.options]


@dataclass(frozen=True)
class SortDefinition:
    key: str
    relation: Optional[str] = None
    column: Optional[str] = None
    transform: Optional[SortTransform] = None
    title: Optional[str] = None

    def __post_init__(self):
        if not self.key:
            raise ValueError("Sort key must not be empty")
        path = split_relation_path(self.key)
        if path is not None:
            relation, column = path
            # explicit binding wins over the one read from the key
            if self.relation is None:
                object.__setattr__(self, "relation", relation)
            if self.column is None:
                object.__setattr__(self, "column", column)
        elif self.column is None:
            object.__setattr__(self, "column", self.key)
        if self.title is None:
            object.__setattr__(self, "title", title_from_key(self.column or self.key))


def advanced_filter(
    key: str,
    apply: ApplyFunction,
    rules: Optional[Dict[str, Any]] = None,
    can_see: Callable[[Any], bool] = always,
    title: Optional[str] = None,
) -> FilterDefinition:
    return FilterDefinition(key=key, kind=FilterKind.ADVANCED, apply=apply, rules=rules or {}, can_see=can_see, title=title)


def timestamp_filter(
    key: str,
    column: Any = None,
    apply: Optional[ApplyFunction] = None,
    operator: str = "eq",
    rules: Optional[Dict[str, Any]] = None,
    can_see: Callable[[Any], bool] = always,
    title: Optional[str] = None,
) -> FilterDefinition:
    """
    A filter whose value is a date ("2024-05-01") or datetime.

    Without `apply`, `column` is compared with `operator` (eq, ne, gt, gte,
    lt, lte); a bare date matches the whole day.
    """
    return FilterDefinition(
        key=key, kind=FilterKind.TIMESTAMP, apply=apply, column=column, operator=operator,
        rules=rules or {}, can_see=can_see, title=title,
    )


def select_filter(
    key: str,
    options,
    column: Any = None,
    apply: Optional[ApplyFunction] = None,
    rules: Optional[Dict[str, Any]] = None,
    can_see: Callable[[Any], bool] = always,
    title: Optional[str] = None,
) -> FilterDefinition:
    return FilterDefinition(
        key=key, kind=FilterKind.SELECT, apply=apply, column=column, options=options,
        rules=rules or {}, can_see=can_see, title=title,
    )


def boolean_filter(
    key: str,
    options,
    apply: Optional[ApplyFunction] = None,
    column: Any = None,
    rules: Optional[Dict[str, Any]] = None,
    can_see: Callable[[Any], bool] = always,
    title: Optional[str] = None,
) -> FilterDefinition:
    """
    A filter over named flags. `options` maps labels to flag names, e.g.
    {"Is Active": "is_active"}; the apply function receives every flag
    as a bool.
    """
    return FilterDefinition(
        key=key, kind=FilterKind.BOOLEAN, apply=apply, column=column, options=options,
        rules=rules or {}, can_see=can_see, title=title,
    )

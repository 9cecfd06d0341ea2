# fastapi_advanced_filters/introspection.py

from typing import Any, Dict, Iterable, List

from .decoder import decode_groups
from .gate import is_visible


def _filter_entries(repository, context: Any) -> List[Dict[str, Any]]:
    return [
        {
            "key": definition.key,
            "type": definition.kind.value,
            "title": definition.title,
            "options": definition.catalog_options(),
        }
        for definition in repository.filters.list()
        if is_visible(definition, context)
    ]


def _group_entries(repository, group: str) -> List[Dict[str, Any]]:
    if group == "matches":
        return [
            {"key": name, "type": "matches", "match_type": match_type}
            for name, match_type in repository.matches.items()
        ]
    if group == "searchables":
        return [{"key": name, "type": "searchables"} for name in repository.searchables]
    return [
        {"key": definition.key, "type": "sortables", "title": definition.title}
        for definition in repository.sorts.list()
    ]


def catalog(repository, include: Iterable[str] = (), only: Iterable[str] = (), context: Any = None) -> List[Dict[str, Any]]:
    """
    The discovery listing for a repository.

    Filters come first, in registration order, followed by the groups named
    in `include`. When `only` names any group the filters are left out and
    just those groups are returned.
    """
    only = tuple(only)
    if only:
        entries = []
    else:
        entries = _filter_entries(repository, context)
    for group in only or tuple(include):
        entries.extend(_group_entries(repository, group))
    return entries


def catalog_from_params(repository, include: str | None, only: str | None, context: Any = None) -> List[Dict[str, Any]]:
    return catalog(repository, decode_groups(include), decode_groups(only), context)

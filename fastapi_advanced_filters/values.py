# fastapi_advanced_filters/values.py

from typing import Any, Optional

_MISSING = object()


def lookup_path(data: Any, path: Optional[str], default: Any = None) -> Any:
    """
    Resolve a dot-separated path inside nested dicts/lists.

    Args:
        data: The decoded payload
        path: Dot-separated path (e.g., "activation.active"), None for the whole payload
        default: Returned when any segment of the path is missing

    Returns:
        The value found at the path, or `default`
    """
    if path is None or path == "":
        return default if data is None else data

    current = data
    for segment in path.split("."):
        if isinstance(current, dict):
            current = current.get(segment, _MISSING)
        elif isinstance(current, (list, tuple)) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        else:
            return default
        if current is _MISSING:
            return default
    return current


def has_path(data: Any, path: str) -> bool:
    return lookup_path(data, path, _MISSING) is not _MISSING


class FilterValue:
    """The normalized value handed to a filter's apply function."""

    def __init__(self, value: Any = None, raw: Any = None):
        self.value = value
        self.raw = raw

    def input(self, path: Optional[str] = None, default: Any = None) -> Any:
        return lookup_path(self.value, path, default)

    def __getitem__(self, path: str) -> Any:
        return self.input(path)

    def __eq__(self, other):
        if isinstance(other, FilterValue):
            return self.value == other.value
        return self.value == other

    def __repr__(self):
        return f"FilterValue({self.value!r})"


def set_path(data: Any, path: str, value: Any) -> None:
    """Replace the value at an existing dot-separated path, in place."""
    *parents, leaf = path.split(".")
    current = data
    for segment in parents:
        current = current[int(segment)] if isinstance(current, list) else current[segment]
    if isinstance(current, list):
        current[int(leaf)] = value
    else:
        current[leaf] = value

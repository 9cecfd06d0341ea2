# fastapi_advanced_filters/kinds.py

from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import and_
from sqlalchemy.sql import Select, operators


class FilterKind(str, Enum):
    ADVANCED = "advanced"
    TIMESTAMP = "timestamp"
    SELECT = "select"
    BOOLEAN = "boolean"


class InvalidFilterValue(ValueError):
    """A raw value that cannot be normalized for the filter kind."""

    def __init__(self, message: str, path: str = "value"):
        super().__init__(message)
        self.path = path


_date_adapter = TypeAdapter(date)
_datetime_adapter = TypeAdapter(datetime)


def _parse_timestamp(raw: Any) -> date | datetime:
    if isinstance(raw, (date, datetime)):
        return raw
    try:
        # "YYYY-MM-DD" is a whole day, anything longer is a point in time
        if isinstance(raw, str) and len(raw.strip()) == 10:
            return _date_adapter.validate_python(raw.strip())
        return _datetime_adapter.validate_python(raw)
    except PydanticValidationError as e:
        raise InvalidFilterValue(f"'{raw}' is not a valid date or datetime") from e


def _normalize_advanced(definition, raw: Any) -> Any:
    return raw


def _normalize_timestamp(definition, raw: Any) -> Optional[date | datetime]:
    if raw is None:
        return None
    return _parse_timestamp(raw)


def _normalize_select(definition, raw: Any) -> Any:
    if raw is None:
        return None
    for label, value in definition.options:
        # true/false only pick boolean options, never 1/0
        if raw == value and isinstance(raw, bool) == isinstance(value, bool):
            return value
    for label, value in definition.options:
        if raw == label:
            return value
    allowed = ", ".join(str(value) for _, value in definition.options)
    raise InvalidFilterValue(f"'{raw}' is not one of: {allowed}")


def _normalize_boolean(definition, raw: Any) -> Dict[str, bool]:
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise InvalidFilterValue("Boolean filters expect an object of flags")
    flags = {}
    for _, flag in definition.options:
        sent = raw.get(flag, False)
        if not isinstance(sent, bool):
            raise InvalidFilterValue(f"'{flag}' must be true or false", path=flag)
        flags[flag] = sent
    return flags


NORMALIZERS: Dict[FilterKind, Callable[[Any, Any], Any]] = {
    FilterKind.ADVANCED: _normalize_advanced,
    FilterKind.TIMESTAMP: _normalize_timestamp,
    FilterKind.SELECT: _normalize_select,
    FilterKind.BOOLEAN: _normalize_boolean,
}


def normalize(definition, raw: Any) -> Any:
    return NORMALIZERS[definition.kind](definition, raw)


def _day_range(day: date) -> Tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def _timestamp_expression(column, value: date | datetime, operator: str):
    # a bare date covers the whole day, datetimes compare as they are
    if isinstance(value, datetime):
        return TIMESTAMP_OPERATORS[operator](column, value)

    start, end = _day_range(value)
    day_expressions = {
        "eq": lambda: and_(column >= start, column < end),
        "ne": lambda: ~and_(column >= start, column < end),
        "gt": lambda: column >= end,
        "gte": lambda: column >= start,
        "lt": lambda: column < start,
        "lte": lambda: column < end,
    }
    return day_expressions[operator]()


TIMESTAMP_OPERATORS = {
    "eq": operators.eq,
    "ne": operators.ne,
    "gt": operators.gt,
    "gte": operators.ge,
    "lt": operators.lt,
    "lte": operators.le,
}


def _apply_timestamp(definition, stmt: Select, value) -> Select:
    if value.value is None:
        return stmt
    return stmt.where(_timestamp_expression(definition.column, value.value, definition.operator))


def _apply_select(definition, stmt: Select, value) -> Select:
    if value.value is None:
        return stmt
    return stmt.where(definition.column == value.value)


def _statement_entity(stmt: Select):
    descriptions = stmt.column_descriptions
    entity = descriptions[0].get("entity") if descriptions else None
    if entity is None:
        raise TypeError("Boolean filters without an apply function need a statement selecting a mapped entity")
    return entity


def _apply_boolean(definition, stmt: Select, value) -> Select:
    raw = value.raw if isinstance(value.raw, dict) else {}
    sent = [flag for flag in value.value if flag in raw]
    if not sent:
        return stmt
    entity = definition.column if definition.column is not None else _statement_entity(stmt)
    return stmt.where(*[getattr(entity, flag).is_(value.value[flag]) for flag in sent])


DEFAULT_APPLIERS: Dict[FilterKind, Callable] = {
    FilterKind.TIMESTAMP: _apply_timestamp,
    FilterKind.SELECT: _apply_select,
    FilterKind.BOOLEAN: _apply_boolean,
}


def default_applier(definition) -> Optional[Callable[[Select, Any], Select]]:
    """
    The apply function used when a definition declares none.

    Timestamp and select filters need a `column`; boolean filters compare
    each sent flag with the attribute of the same name on `column` (a
    mapped class) or on the statement's entity. Advanced filters have no
    default.
    """
    applier = DEFAULT_APPLIERS.get(definition.kind)
    if applier is None:
        return None
    if definition.kind in (FilterKind.TIMESTAMP, FilterKind.SELECT) and definition.column is None:
        return None
    return lambda stmt, value: applier(definition, stmt, value)


def option_entries(options) -> List[Tuple[str, Any]]:
    """Accept {label: value} mappings or (label, value) pairs, keep order."""
    if options is None:
        return []
    if isinstance(options, dict):
        return list(options.items())
    return [tuple(option) for option in options]

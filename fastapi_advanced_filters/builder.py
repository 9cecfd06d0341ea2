# fastapi_advanced_filters/builder.py

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import String, cast, or_, asc, desc, Enum, select
from sqlalchemy.orm import RelationshipProperty, aliased
from sqlalchemy.sql import Select

from .config import DEFAULT_CONFIG, FilterConfig
from .decoder import SortRequest, decode_filters, decode_sort
from .definitions import SortDefinition, SortDirection
from .errors import FilterError, UnknownSortError, ValidationError
from .gate import authorize
from .params import Params
from .validation import validate_payloads
from .values import FilterValue

logger = logging.getLogger(__name__)

NULL_TOKEN = "null"
TRUE_TOKENS = ("true", "1")
FALSE_TOKENS = ("false", "0")
_ARRAY_ITEM_TYPES = {int: "int", bool: "bool"}


def resolve_and_join_column(model, nested_keys: list[str], query: Select, joins: dict) -> Tuple[Any, Select]:
    current_model = model
    alias = None

    for i, attr in enumerate(nested_keys):
        relationship = getattr(current_model, attr, None)

        if relationship is not None and isinstance(getattr(relationship, "property", None), RelationshipProperty):
            related_model = relationship.property.mapper.class_
            if related_model not in joins:
                alias = aliased(related_model)
                joins[related_model] = alias
                query = query.outerjoin(alias, getattr(current_model, attr))
            else:
                alias = joins[related_model]

            current_model = alias
        else:
            if i > 0 and hasattr(current_model, attr):
                return getattr(current_model, attr), query
            raise FilterError(
                f"Invalid sort key: {'.'.join(nested_keys)}. "
                f"Could not resolve relationship '{attr}' in model '{_model_name(current_model)}'."
            )
    raise FilterError(f"Could not resolve column for {'.'.join(nested_keys)}.")


def _model_name(model) -> str:
    return getattr(model, "__name__", None) or type(model).__name__


def resolve_sort(repository, request: Optional[SortRequest]) -> Optional[Tuple[SortDefinition, SortDirection]]:
    if request is None:
        return None
    return repository.sorts.lookup(request.key), request.direction


def resolve_sort_column(model, stmt: Select, definition: SortDefinition, joins: dict) -> Tuple[Any, Select]:
    """
    The column a sort orders by, joining its relation onto `stmt` if needed.
    Returns (None, stmt) for sorts with a transform.
    """
    if definition.transform is not None:
        return None, stmt

    if definition.relation:
        return resolve_and_join_column(model, [definition.relation, definition.column], stmt, joins)

    column = getattr(model, definition.column, None)
    if column is None:
        raise UnknownSortError(definition.key)
    return column, stmt


def apply_sort(stmt: Select, definition: SortDefinition, direction: SortDirection, column: Any) -> Select:
    # an explicit transform takes precedence over column ordering
    if definition.transform is not None:
        return definition.transform(stmt, direction)

    logger.debug("Ordering by '%s' %s", definition.key, direction.value)
    return stmt.order_by(asc(column) if direction == SortDirection.ASC else desc(column))


def _match_column(model, name: str):
    columns = model.__table__.columns
    if name not in columns:
        raise FilterError(f"Match field '{name}' is not a column of '{model.__name__}'")
    return columns[name]


def _coerce_match(match_type: str, token: str) -> Any:
    if match_type in ("int", "integer"):
        return int(token)
    if match_type in ("bool", "boolean"):
        lowered = token.lower()
        if lowered in TRUE_TOKENS:
            return True
        if lowered in FALSE_TOKENS:
            return False
        raise ValueError(f"'{token}' is not a boolean")
    return token


def parse_matches(repository, match_params: Optional[Mapping[str, str]]) -> List[Tuple[str, bool, Optional[list]]]:
    """
    Read `field=value` / `-field=value` pairs for the repository's matches.

    Returns (field, negated, values) triples; `values` is None for `null`.
    Comma separated values of array matches become an IN list.
    """
    if not match_params or not repository.matches:
        return []

    parsed = []
    errors: Dict[str, List[str]] = {}
    for param, raw in match_params.items():
        negated = param.startswith("-")
        field = param[1:] if negated else param
        match_type = repository.matches.get(field)
        if match_type is None:
            continue
        if raw == NULL_TOKEN:
            parsed.append((field, negated, None))
            continue
        if match_type == "array":
            tokens = raw.split(",")
            match_type = _ARRAY_ITEM_TYPES.get(_python_type(_match_column(repository.model, field)), "text")
        else:
            tokens = [raw]
        try:
            parsed.append((field, negated, [_coerce_match(match_type, token.strip()) for token in tokens]))
        except ValueError as e:
            errors.setdefault(field, []).append(str(e))
    if errors:
        raise ValidationError(errors)
    return parsed


def apply_matches(model, stmt: Select, matches: List[Tuple[str, bool, Optional[list]]]) -> Select:
    for field, negated, values in matches:
        column = _match_column(model, field)
        if values is None:
            expression = column.is_(None)
        elif len(values) == 1:
            expression = column == values[0]
        else:
            expression = column.in_(values)
        stmt = stmt.where(~expression if negated else expression)
    return stmt


def apply_search(model, stmt: Select, term: str, searchables, config: FilterConfig = DEFAULT_CONFIG) -> Select:
    search_expr = []

    for name in searchables:
        column = _match_column(model, name)
        if is_enum_column(column):
            search_expr.append(_like(cast(column, String), term, config))
        elif is_string_column(column):
            search_expr.append(_like(column, term, config))
        elif is_integer_column(column):
            if term.isdecimal():
                search_expr.append(column == int(term))
        elif is_boolean_column(column):
            if term.lower() in ("true", "false"):
                search_expr.append(column == (term.lower() == "true"))

    if search_expr:
        stmt = stmt.where(or_(*search_expr))
    return stmt


def _like(column, term: str, config: FilterConfig):
    pattern = f"%{term}%"
    return column.like(pattern) if config.case_sensitive_search else column.ilike(pattern)


def build_query(
    repository,
    params: Params,
    stmt: Select | None = None,
    context: Any = None,
    config: FilterConfig | None = None,
    match_params: Optional[Mapping[str, str]] = None,
) -> Select:
    """
    Resolve the request's filters and sort and apply them onto `stmt`.

    Everything that can fail (decoding, unknown keys, payload validation,
    resolving the sort column) happens before the first filter is applied,
    so a failing request never leaves a partially filtered statement
    behind. Filters the caller can't see are skipped silently. The returned
    statement is not executed.
    """
    config = config or DEFAULT_CONFIG
    model = repository.model
    stmt = select(model) if stmt is None else stmt

    # Resolve
    requests = decode_filters(params.filters, config)
    pairs = [(repository.filters.lookup(request.key), request) for request in requests]
    sort_request = decode_sort(params.sort) or decode_sort(config.default_sort)
    sort = resolve_sort(repository, sort_request)

    # Gate and validate
    validated = validate_payloads(authorize(pairs, context))
    matches = parse_matches(repository, match_params)
    if sort is not None:
        sort_column, stmt = resolve_sort_column(model, stmt, sort[0], joins={})

    # Filters, in the order the client listed them
    for definition, request, normalized in validated:
        logger.debug("Applying filter '%s'", definition.key)
        stmt = definition.apply(stmt, FilterValue(normalized, raw=request.value))

    if matches:
        stmt = apply_matches(model, stmt, matches)

    # Search - ONLY in searchable columns
    search = getattr(params, "search", None)
    if search and repository.searchables:
        stmt = apply_search(model, stmt, search, repository.searchables, config)

    # Sorting
    if sort is not None:
        definition, direction = sort
        stmt = apply_sort(stmt, definition, direction, sort_column)

    return stmt


def is_enum_column(column):
    """Check if a column is an enum type"""
    return isinstance(column.type, Enum)


def is_string_column(column):
    """Check if a column is a string type"""
    return isinstance(column.type, String)


def is_integer_column(column):
    """Check if a column is an integer type"""
    return _python_type(column) is int


def is_boolean_column(column):
    """Check if a column is a boolean type"""
    return _python_type(column) is bool


def _python_type(column):
    try:
        return column.type.python_type
    except NotImplementedError:
        return None

# fastapi_advanced_filters/validation.py

import copy
import logging
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Tuple

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .decoder import FilterRequest
from .definitions import FilterDefinition
from .errors import ValidationError
from .kinds import InvalidFilterValue, normalize
from .values import has_path, lookup_path, set_path

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = "Field required"


@lru_cache(maxsize=None)
def _adapter(annotation) -> TypeAdapter:
    return TypeAdapter(annotation)


def _get_adapter(annotation) -> TypeAdapter:
    try:
        return _adapter(annotation)
    except TypeError:
        # unhashable annotations (e.g. Annotated with dict metadata)
        return TypeAdapter(annotation)


def _accepts_none(adapter: TypeAdapter) -> bool:
    try:
        adapter.validate_python(None)
    except PydanticValidationError:
        return False
    return True


def apply_rules(rules: Dict[str, Any], value: Any) -> Tuple[Dict[str, List[str]], Any]:
    """
    Validate `value` against a mapping of dotted path -> type annotation.

    Returns the messages per failing path (empty when valid) and a copy of
    `value` holding the validated values, e.g. {"views": "3"} becomes
    {"views": 3} under an `int` rule. A missing path only passes when the
    annotation accepts None, and stays missing.
    """
    errors: Dict[str, List[str]] = {}
    coerced = copy.deepcopy(value)
    for path, annotation in rules.items():
        adapter = _get_adapter(annotation)
        if not has_path(value, path):
            if not _accepts_none(adapter):
                errors[path] = [REQUIRED_MESSAGE]
            continue
        try:
            result = adapter.validate_python(lookup_path(value, path))
        except PydanticValidationError as e:
            errors[path] = [error["msg"] for error in e.errors()]
            continue
        if path:
            set_path(coerced, path, result)
        else:
            coerced = result
    return errors, coerced


def check_rules(rules: Dict[str, Any], value: Any) -> Dict[str, List[str]]:
    return apply_rules(rules, value)[0]


def validate_payloads(pairs: Iterable[Tuple[FilterDefinition, FilterRequest]]) -> List[Tuple[FilterDefinition, FilterRequest, Any]]:
    """
    Validate every filter payload, then normalize it by kind.

    All filters are checked before anything is returned so a request either
    passes as a whole or fails with one ValidationError listing every
    offending field as "<filter key>.<path>".
    """
    errors: Dict[str, List[str]] = {}
    validated = []
    for definition, request in pairs:
        failures, coerced = apply_rules(definition.rules, request.value)
        for path, messages in failures.items():
            errors.setdefault(f"{definition.key}.{path}", []).extend(messages)
        if failures:
            continue
        try:
            normalized = normalize(definition, coerced)
        except InvalidFilterValue as e:
            errors.setdefault(f"{definition.key}.{e.path}", []).append(str(e))
            continue
        validated.append((definition, request, normalized))

    if errors:
        logger.warning("Rejected filters payload: %s", errors)
        raise ValidationError(errors)
    return validated

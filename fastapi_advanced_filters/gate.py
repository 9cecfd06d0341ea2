# fastapi_advanced_filters/gate.py

import logging
from typing import Any, Iterable, List, Tuple

from .decoder import FilterRequest
from .definitions import FilterDefinition

logger = logging.getLogger(__name__)


def is_visible(definition: FilterDefinition, context: Any) -> bool:
    return bool(definition.can_see(context))


def authorize(
    pairs: Iterable[Tuple[FilterDefinition, FilterRequest]],
    context: Any = None,
) -> List[Tuple[FilterDefinition, FilterRequest]]:
    """
    Keep the filters the caller may see, in request order.

    Unauthorized filters are dropped without an error: to the caller they
    behave as if they were never sent.
    """
    authorized = []
    for definition, request in pairs:
        if is_visible(definition, context):
            authorized.append((definition, request))
        else:
            logger.debug("Dropping filter '%s': not visible to the caller", definition.key)
    return authorized

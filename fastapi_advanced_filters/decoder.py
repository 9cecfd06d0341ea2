# fastapi_advanced_filters/decoder.py

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple

from .config import DEFAULT_CONFIG, FilterConfig
from .definitions import SortDirection, split_relation_path
from .errors import MalformedFilterPayloadError

logger = logging.getLogger(__name__)

GROUPS = ("matches", "searchables", "sortables")


@dataclass(frozen=True)
class FilterRequest:
    key: str
    value: Any = None


@dataclass(frozen=True)
class SortRequest:
    key: str
    direction: SortDirection = SortDirection.ASC
    relation: Optional[str] = None
    column: Optional[str] = None


def _b64decode(raw: str) -> bytes:
    data = raw.strip()
    # tolerate url-safe alphabet, unescaped "+" and stripped padding
    data = data.replace(" ", "+").replace("-", "+").replace("_", "/")
    data += "=" * (-len(data) % 4)
    return base64.b64decode(data, validate=True)


def decode_filters(raw: Optional[str], config: FilterConfig = DEFAULT_CONFIG) -> List[FilterRequest]:
    if not raw:
        return []
    if len(raw) > config.max_payload_length:
        raise MalformedFilterPayloadError(
            f"Filters payload too long: {len(raw)} characters, at most {config.max_payload_length} allowed")
    try:
        parsed = json.loads(_b64decode(raw).decode("utf-8"))
    except (binascii.Error, ValueError, RecursionError) as e:
        # UnicodeDecodeError and JSONDecodeError are both ValueErrors
        logger.warning("Rejected filters payload: %s", e)
        raise MalformedFilterPayloadError(f"Invalid filters payload: {e}") from e

    if not isinstance(parsed, list):
        raise MalformedFilterPayloadError("Filters must be a JSON array")
    if len(parsed) > config.max_filters:
        raise MalformedFilterPayloadError(
            f"Too many filters: {len(parsed)} given, at most {config.max_filters} allowed")

    requests = []
    for position, item in enumerate(parsed):
        if not isinstance(item, dict):
            raise MalformedFilterPayloadError(f"Filter at position {position} must be an object")
        key = item.get("key")
        if not isinstance(key, str) or not key:
            raise MalformedFilterPayloadError(f"Filter at position {position} is missing a string 'key'")
        requests.append(FilterRequest(key=key, value=item.get("value")))
    return requests


def encode_filters(requests: Iterable[FilterRequest | dict]) -> str:
    items = []
    for request in requests:
        if isinstance(request, FilterRequest):
            items.append({"key": request.key, "value": request.value})
        else:
            items.append({"key": request["key"], "value": request.get("value")})
    return base64.b64encode(json.dumps(items).encode("utf-8")).decode("ascii")


def decode_sort(raw: Optional[str]) -> Optional[SortRequest]:
    if raw is None or not raw.strip():
        return None

    token = raw.strip()
    direction = SortDirection.ASC
    if token[0] in "-+":
        direction = SortDirection.DESC if token[0] == "-" else SortDirection.ASC
        token = token[1:]
    if not token:
        raise MalformedFilterPayloadError(f"Invalid sort: {raw}")

    path = split_relation_path(token)
    if path is not None:
        relation, column = path
        return SortRequest(key=token, direction=direction, relation=relation, column=column)
    return SortRequest(key=token, direction=direction, column=token)


def decode_groups(raw: Optional[str]) -> Tuple[str, ...]:
    """Parse include=/only= values, keeping the known group names in order."""
    if not raw:
        return ()
    groups = []
    for name in (part.strip() for part in raw.split(",")):
        if not name:
            continue
        if name not in GROUPS:
            logger.debug("Ignoring unknown group '%s'", name)
            continue
        if name not in groups:
            groups.append(name)
    return tuple(groups)

from .builder import build_query  # noqa: F401
from .config import FilterConfig  # noqa: F401
from .decoder import FilterRequest, SortRequest, decode_filters, decode_groups, decode_sort, encode_filters  # noqa: F401
from .definitions import (  # noqa: F401
    FilterDefinition,
    SortDefinition,
    SortDirection,
    advanced_filter,
    boolean_filter,
    select_filter,
    timestamp_filter,
)
from .dependencies import FilterSortBuilder, filters_router  # noqa: F401
from .errors import (  # noqa: F401
    DuplicateKeyError,
    FilterError,
    MalformedFilterPayloadError,
    UnknownFilterError,
    UnknownSortError,
    ValidationError,
)
from .introspection import catalog  # noqa: F401
from .kinds import FilterKind  # noqa: F401
from .params import QueryParams  # noqa: F401
from .registry import FilterRegistry, SortRegistry  # noqa: F401
from .repository import Repository  # noqa: F401
from .values import FilterValue  # noqa: F401

__all__ = [
    "Repository",
    "build_query",
    "catalog",
    "FilterSortBuilder",
    "filters_router",
    "FilterConfig",
    "QueryParams",
    # Definitions
    "FilterDefinition",
    "SortDefinition",
    "SortDirection",
    "FilterKind",
    "FilterValue",
    "advanced_filter",
    "timestamp_filter",
    "select_filter",
    "boolean_filter",
    # Registries
    "FilterRegistry",
    "SortRegistry",
    # Wire format
    "FilterRequest",
    "SortRequest",
    "decode_filters",
    "encode_filters",
    "decode_sort",
    "decode_groups",
    # Errors
    "FilterError",
    "MalformedFilterPayloadError",
    "UnknownFilterError",
    "UnknownSortError",
    "ValidationError",
    "DuplicateKeyError",
]

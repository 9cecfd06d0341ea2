# fastapi_advanced_filters/errors.py

from typing import Any, Dict, List

from fastapi import HTTPException


class FilterError(HTTPException):
    """Base class for errors raised while resolving a request."""

    status_code = 400

    def __init__(self, detail: Any, status_code: int | None = None):
        super().__init__(status_code=status_code or self.status_code, detail=detail)


class MalformedFilterPayloadError(FilterError):
    pass


class UnknownFilterError(FilterError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Unknown filter: {key}")


class UnknownSortError(FilterError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Invalid sort field: {key}")


class ValidationError(FilterError):
    """
    Raised when one or more filter payloads fail their rules.

    `errors` maps "<filter key>.<field path>" to the list of messages for
    that field. Every failing filter of the request is reported at once.
    """

    status_code = 422

    def __init__(self, errors: Dict[str, List[str]]):
        self.errors = errors
        super().__init__({"message": "The given filters are invalid.", "errors": errors})


class DuplicateKeyError(KeyError):
    """Registration time only: the key is already taken in the registry."""

    def __init__(self, key: str, registry: str = "registry"):
        self.key = key
        super().__init__(f"Duplicate key '{key}' in {registry}")

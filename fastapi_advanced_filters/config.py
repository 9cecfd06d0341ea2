# fastapi_advanced_filters/config.py

from typing import Optional

from pydantic import BaseModel, Field


class FilterConfig(BaseModel):
    max_filters: int = Field(50, ge=1, description="Maximum number of entries accepted in the filters payload.")
    max_payload_length: int = Field(65536, ge=1, description="Maximum length of the raw filters parameter.")
    default_sort: Optional[str] = Field(None, description="Sort token used when the request has none, e.g. -id.")
    discovery_path: str = Field("/filters", description="Path of the catalog endpoint, relative to the router prefix.")
    case_sensitive_search: bool = Field(False, description="Use LIKE instead of ILIKE for search.")


DEFAULT_CONFIG = FilterConfig()

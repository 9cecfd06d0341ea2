# fastapi_advanced_filters/params.py

from typing import Optional, Protocol

from fastapi import Query


class Params(Protocol):
	filters: str | None
	sort: str | None
	search: str | None


class QueryParams:
	def __init__(
		self,
		filters: Optional[str] = Query(None, description="Base64 encoded JSON array of {key, value} filters, applied in order."),
		sort: Optional[str] = Query(None, description="e.g. -id, +title or post.attributes.title"),
		search: Optional[str] = Query(None, description="A string for global search across searchable fields.")
	):
		self.filters = filters
		self.search = search
		self.sort = sort


class CatalogParams:
	def __init__(
		self,
		include: Optional[str] = Query(None, description="Extra groups to append: matches,searchables,sortables"),
		only: Optional[str] = Query(None, description="Return only these groups: matches,searchables,sortables")
	):
		self.include = include
		self.only = only

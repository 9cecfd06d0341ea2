# fastapi_advanced_filters/dependencies.py

from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, Depends, Request

from .builder import build_query
from .config import DEFAULT_CONFIG, FilterConfig
from .introspection import catalog_from_params
from .params import CatalogParams, QueryParams
from .repository import Repository


def request_context(request: Request) -> Request:
    return request


def FilterSortBuilder(
    repository: Repository,
    context_dependency: Optional[Callable[..., Any]] = None,
    config: Optional[FilterConfig] = None,
):
    """
    Dependency yielding `select(repository.model)` with the request's
    filters, matches, search and sort applied. `context_dependency` supplies
    the caller context handed to each filter's `can_see`; by default it is
    the Request.
    """
    repository.freeze()
    config = config or DEFAULT_CONFIG

    def wrapper(
        request: Request,
        params: QueryParams = Depends(),
        context: Any = Depends(context_dependency or request_context),
    ):
        return build_query(repository, params, context=context, config=config, match_params=request.query_params)
    return Depends(wrapper)


def filters_router(
    repository: Repository,
    prefix: str = "",
    context_dependency: Optional[Callable[..., Any]] = None,
    config: Optional[FilterConfig] = None,
    **router_kwargs,
) -> APIRouter:
    repository.freeze()
    config = config or DEFAULT_CONFIG
    router = APIRouter(prefix=prefix, **router_kwargs)

    @router.get(config.discovery_path)
    def list_filters(
        params: CatalogParams = Depends(),
        context: Any = Depends(context_dependency or request_context),
    ) -> Dict[str, List[Dict[str, Any]]]:
        return {"data": catalog_from_params(repository, params.include, params.only, context)}

    return router

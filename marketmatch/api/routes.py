"""HTTP routes.

Handlers are plain ``def`` functions: the pipelines are synchronous and
FastAPI runs them on its worker threadpool.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, Query, Request

from marketmatch.cache.registry import CacheRegistry
from marketmatch.logging import get_logger
from marketmatch.pipeline import MatchOrchestrator, SearchOrchestrator

logger = get_logger(__name__, component="http")

router = APIRouter()


def get_match_orchestrator(request: Request) -> MatchOrchestrator:
    return request.app.state.match_orchestrator


def get_search_orchestrator(request: Request) -> SearchOrchestrator:
    return request.app.state.search_orchestrator


def get_cache_registry(request: Request) -> CacheRegistry:
    return request.app.state.cache_registry


def _drop_none(params: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in params.items() if value is not None}


@router.get("/health", tags=["System"])
def health(request: Request):
    return {
        "status": "ok",
        "service": "marketmatch",
        "summarizer": type(request.app.state.summarizer).__name__,
    }


@router.post("/api/engineers/match", tags=["Match"])
def match_engineers(
    payload: Any = Body(None),
    authorization: Optional[str] = Header(None),
    orchestrator: MatchOrchestrator = Depends(get_match_orchestrator),
):
    # Any non-blank Authorization header unlocks the AI recommendation
    authorized = bool(authorization and authorization.strip())
    return orchestrator.match(payload, authorized=authorized).to_dict()


@router.get("/api/engineers/search", tags=["Match"])
def search_engineers(
    query: Optional[str] = None,
    skills: Optional[str] = None,
    service_type: Optional[str] = Query(None, alias="serviceType"),
    lat: Optional[str] = None,
    long: Optional[str] = None,
    max_distance: Optional[str] = Query(None, alias="maxDistance"),
    remote_only: Optional[str] = Query(None, alias="remoteOnly"),
    orchestrator: SearchOrchestrator = Depends(get_search_orchestrator),
):
    params = _drop_none(
        {
            "query": query,
            "skills": skills,
            "serviceType": service_type,
            "maxDistance": max_distance,
            "remoteOnly": remote_only,
        }
    )
    if lat is not None or long is not None:
        params["location"] = _drop_none({"lat": lat, "long": long})

    return orchestrator.search_engineers(params).to_dict()


@router.get("/api/search", tags=["Search"])
def search_listings(
    q: Optional[str] = None,
    lang: Optional[str] = None,
    listing_type: Optional[str] = Query(None, alias="type"),
    limit: Optional[str] = None,
    accept_language: Optional[str] = Header(None),
    orchestrator: SearchOrchestrator = Depends(get_search_orchestrator),
):
    params = _drop_none({"q": q, "lang": lang, "type": listing_type, "limit": limit})
    return orchestrator.search(params, accept_language=accept_language).to_dict()


@router.get("/api/admin/cache", tags=["Admin"])
def cache_stats(registry: CacheRegistry = Depends(get_cache_registry)):
    return registry.stats()


@router.delete("/api/admin/cache", tags=["Admin"])
def clear_cache(registry: CacheRegistry = Depends(get_cache_registry)):
    removed = registry.clear_all()
    return {"message": "All caches cleared", "removed": removed}


@router.delete("/api/admin/cache/{table}", tags=["Admin"])
def clear_cache_table(table: str, registry: CacheRegistry = Depends(get_cache_registry)):
    removed = registry.clear_table(table)
    logger.info(
        f"Cleared cache for table {table}",
        extra={"event": "cache.table_cleared", "table": table, "removed": removed},
    )
    return {"message": f"Cache cleared for {table}", "table": table, "removed": removed}

"""
routers/system — Health check, dashboard stats, cache purge, source refresh.
"""
from __future__ import annotations
from fastapi import APIRouter, Depends, Query

from ...cache import ApiCache
from ...config import Config
from ...services import Services
from ..deps import get_config, get_services
from ..schemas import (
    CountResponse, HealthResponse, PurgeResponse, StatsResponse,
)

router = APIRouter(prefix="/api/v1", tags=["system"])


@router.get("/health", response_model=HealthResponse)
def health(config: Config = Depends(get_config)):
    return HealthResponse(status="ok", api_key_configured=bool(config.api_key))


@router.get("/stats", response_model=StatsResponse)
def stats(svc: Services = Depends(get_services)):
    counts = svc.store.get_stats()
    return StatsResponse(
        **counts,
        cache_by_type=ApiCache(svc.store.session).counts_by_type(),
    )


@router.delete("/cache", response_model=PurgeResponse)
def purge_cache(
    category: str | None = Query(None, description="Only purge one cache type"),
    svc: Services = Depends(get_services),
):
    return PurgeResponse(deleted=svc.store.purge_cache(category), category=category)


@router.post("/sources/refresh", response_model=CountResponse)
def refresh_sources(svc: Services = Depends(get_services)):
    return CountResponse(count=svc.store.refresh_sources())


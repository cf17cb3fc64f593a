"""Cache management API routes."""

from datetime import timedelta

from fastapi import APIRouter
from pydantic import BaseModel, Field

from subrelay.api.dependencies import CacheDep, RequireAuth

router = APIRouter()


class CacheStatsResponse(BaseModel):
    """Cache statistics response."""
    total_entries: int
    hit_rate: float
    estimated_savings_usd: float


class CachePurgeResponse(BaseModel):
    """Cache purge response."""
    entries_deleted: int
    action: str


class PurgeOlderRequest(BaseModel):
    days: int = Field(..., ge=0, description="Delete entries unused for this many days")


@router.get("/cache/stats")
async def get_cache_stats(cache: CacheDep) -> CacheStatsResponse:
    """Get translation cache statistics.

    The hit rate is derived from average use counts and the savings figure
    is an estimate based on a fixed token cost per entry.
    """
    stats = await cache.stats()
    return CacheStatsResponse(**stats.to_dict())


@router.post("/cache/purge")
async def purge_cache(cache: CacheDep, _auth: RequireAuth) -> CachePurgeResponse:
    """Delete every cache entry and compact the database."""
    count = await cache.purge()
    return CachePurgeResponse(entries_deleted=count, action="purge_all")


@router.post("/cache/purge-older")
async def purge_old_entries(
    request: PurgeOlderRequest,
    cache: CacheDep,
    _auth: RequireAuth,
) -> CachePurgeResponse:
    """Delete entries not used within the given number of days."""
    count = await cache.purge_older_than(timedelta(days=request.days))
    return CachePurgeResponse(entries_deleted=count, action=f"purge_older_than_{request.days}d")

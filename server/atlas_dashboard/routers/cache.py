"""Cache inspection and invalidation."""

from fastapi import APIRouter, Depends, HTTPException

from ..deps import get_dashboard
from ..services.dashboard import Dashboard, UnknownMetricError

router = APIRouter(prefix="/cache", tags=["cache"])


@router.get("")
async def cache_stats(dashboard: Dashboard = Depends(get_dashboard)):
    return dashboard.cache.stats()


@router.delete("")
async def clear_cache(dashboard: Dashboard = Depends(get_dashboard)):
    """Drop every cached metric."""
    size = len(dashboard.cache)
    dashboard.cache.clear()
    return {"cleared": size}


@router.delete("/metrics/{name}")
async def invalidate_metric(name: str, dashboard: Dashboard = Depends(get_dashboard)):
    try:
        invalidated = dashboard.invalidate(name)
    except UnknownMetricError:
        raise HTTPException(status_code=404, detail=f"Unknown metric: {name}")
    return {"metric": name, "invalidated": invalidated}

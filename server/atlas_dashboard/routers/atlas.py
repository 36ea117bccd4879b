"""Proxy for the RED Atlas admin dashboard document."""

from fastapi import APIRouter, Depends, HTTPException, Response

from ..deps import get_dashboard
from ..services.cache import CacheStatus
from ..services.dashboard import Dashboard, metric_key
from ..services.errors import ColdMissError

router = APIRouter(tags=["atlas"])


@router.get("/atlas-data")
async def atlas_data(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    """Return the Atlas dashboard payload as received, with cache headers."""
    try:
        result = await dashboard.load("atlas-data")
    except ColdMissError:
        raise HTTPException(status_code=500, detail="Failed to fetch data")

    status = result.cache_status
    response.headers["X-Cache-Status"] = status.value
    if status is not CacheStatus.STALE:
        ttl = dashboard.settings.ttl_for("default")
        response.headers["Cache-Control"] = f"public, s-maxage={ttl}, stale-while-revalidate={ttl * 2}"
    if status is CacheStatus.HIT:
        entry = dashboard.cache.peek(metric_key("atlas-data"))
        if entry is not None:
            age = entry.age(dashboard.cache.now())
            response.headers["X-Cache-Age"] = f"{int(age)}s"
    return result.payload

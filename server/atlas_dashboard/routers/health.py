"""Health check endpoint."""

from fastapi import APIRouter, Depends

from .. import __version__
from ..deps import get_dashboard
from ..services.dashboard import Dashboard

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(dashboard: Dashboard = Depends(get_dashboard)):
    """Health check and status endpoint."""
    providers = dashboard.providers
    return {
        "status": "ok",
        "version": __version__,
        "timeZone": dashboard.settings.dashboard_timezone,
        "providers": {
            "stripe": providers.stripe.configured,
            "analytics": providers.analytics.configured,
            "ads": providers.ads.configured,
            "atlas": providers.atlas.configured,
        },
        "cacheSize": len(dashboard.cache),
    }

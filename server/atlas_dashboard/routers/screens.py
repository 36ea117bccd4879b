"""Slideshow screens and server-side prefetch."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from ..deps import get_dashboard
from ..services.dashboard import Dashboard
from ..services.screens import SCREENS, get_screen, next_screen

router = APIRouter(prefix="/screens", tags=["screens"])


@router.get("")
async def list_screens(dashboard: Dashboard = Depends(get_dashboard)):
    """Screen order and rotation timing for the slideshow."""
    settings = dashboard.settings
    return {
        "screens": [asdict(screen) for screen in SCREENS],
        "rotationSeconds": settings.screen_rotation_seconds,
        "refreshSeconds": settings.client_refresh_seconds,
        "prefetchLeadSeconds": settings.prefetch_lead_seconds,
    }


@router.get("/next")
async def get_next_screen(current: int = 0):
    try:
        get_screen(current)
    except IndexError:
        raise HTTPException(status_code=404, detail="Screen not found")
    return asdict(next_screen(current))


@router.post("/{index}/prefetch")
async def prefetch_screen(index: int, dashboard: Dashboard = Depends(get_dashboard)):
    """Warm the cache with every metric the screen shows."""
    try:
        screen = get_screen(index)
    except IndexError:
        raise HTTPException(status_code=404, detail="Screen not found")

    return {
        "screen": screen.name,
        "metrics": await dashboard.prefetch(screen.metrics),
    }

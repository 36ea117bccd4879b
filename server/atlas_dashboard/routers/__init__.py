"""API routers for the RED Atlas dashboard."""

from .health import router as health_router
from .auth import router as auth_router
from .metrics import router as metrics_router
from .atlas import router as atlas_router
from .screens import router as screens_router
from .cache import router as cache_router
from .diagnostics import router as diagnostics_router

__all__ = [
    "health_router",
    "auth_router",
    "metrics_router",
    "atlas_router",
    "screens_router",
    "cache_router",
    "diagnostics_router",
]

"""Uncached upstream checks for troubleshooting credentials."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from ..deps import get_dashboard
from ..services.dashboard import Dashboard
from ..services.errors import NotConfiguredError

router = APIRouter(prefix="/diagnostics", tags=["diagnostics"])


@router.get("/stripe")
async def stripe_diagnostics(dashboard: Dashboard = Depends(get_dashboard)):
    """Revenue for the last four weeks, the last 30 days and the current month."""
    try:
        return await dashboard.providers.stripe.revenue_periods()
    except NotConfiguredError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    except Exception as exc:
        logger.error("Stripe diagnostics failed: {}", exc)
        raise HTTPException(status_code=500, detail=f"Failed to fetch revenue data from Stripe: {exc}")


@router.get("/analytics")
async def analytics_diagnostics(dashboard: Dashboard = Depends(get_dashboard)):
    """Google Analytics configuration and one read of each report kind."""
    analytics = dashboard.providers.analytics
    sections = {
        "active_users": analytics.active_users_realtime,
        "operating_systems": analytics.operating_systems,
        "countries": analytics.countries,
    }

    results = {}
    errors = {}
    for name, read in sections.items():
        try:
            results[name] = await read()
        except Exception as exc:
            logger.warning("Analytics diagnostics {} failed: {}", name, exc)
            errors[name] = str(exc)

    return {
        "status": "error" if errors else "ok",
        "ga_property_id_configured": analytics.configured,
        "credentials_configured": bool(dashboard.settings.google_application_credentials),
        "results": results,
        "errors": errors,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

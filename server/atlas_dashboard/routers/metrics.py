"""Dashboard metric endpoints.

Every endpoint reads through the shared cache. Object payloads are stamped
with ``source`` and ``timestamp``; all responses carry ``X-Cache-Status`` and
``X-Data-Source`` headers.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Response

from ..deps import get_dashboard
from ..services.dashboard import Dashboard
from ..services.errors import ColdMissError, NotConfiguredError

router = APIRouter(prefix="/metrics", tags=["metrics"])


async def _respond(dashboard: Dashboard, name: str, response: Response):
    try:
        result = await dashboard.load(name)
    except ColdMissError as exc:
        if isinstance(exc.cause, NotConfiguredError):
            detail = str(exc.cause)
        else:
            detail = f"Failed to fetch {name}"
        raise HTTPException(status_code=500, detail=detail)

    response.headers["X-Data-Source"] = result.source.value
    if result.cache_status is not None:
        response.headers["X-Cache-Status"] = result.cache_status.value

    payload = result.payload
    if isinstance(payload, dict):
        payload = {
            **payload,
            "source": result.source.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    return payload


@router.get("/active-users-30min")
async def active_users_30min(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    """Realtime active users against the older half of the realtime window."""
    return await _respond(dashboard, "active-users-30min", response)


@router.get("/active-users-24h")
async def active_users_24h(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    return await _respond(dashboard, "active-users-24h", response)


@router.get("/active-users-7days")
async def active_users_7days(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    return await _respond(dashboard, "active-users-7days", response)


@router.get("/active-users-yesterday")
async def active_users_yesterday(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    return await _respond(dashboard, "active-users-yesterday", response)


@router.get("/registered-users")
async def registered_users(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    """Users seen in the last 30 days."""
    return await _respond(dashboard, "registered-users", response)


@router.get("/registered-users-history")
async def registered_users_history(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    return await _respond(dashboard, "registered-users-history", response)


@router.get("/page-views-today")
async def page_views_today(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    """Page views of yesterday, the last complete day."""
    return await _respond(dashboard, "page-views-today", response)


@router.get("/page-views-by-hour")
async def page_views_by_hour(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    """Daily page views over the last two weeks."""
    return await _respond(dashboard, "page-views-by-hour", response)


@router.get("/device-breakdown")
async def device_breakdown(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    return await _respond(dashboard, "device-breakdown", response)


@router.get("/geographic-breakdown")
async def geographic_breakdown(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    return await _respond(dashboard, "geographic-breakdown", response)


@router.get("/ctr-week")
async def ctr_week(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    return await _respond(dashboard, "ctr-week", response)


@router.get("/roas-week")
async def roas_week(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    return await _respond(dashboard, "roas-week", response)


@router.get("/ctr-daily-7days")
async def ctr_daily_7days(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    return await _respond(dashboard, "ctr-daily-7days", response)


@router.get("/paid-users-month")
async def paid_users_month(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    return await _respond(dashboard, "paid-users-month", response)


@router.get("/stripe-revenue")
async def stripe_revenue(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    """Net revenue of the last four weeks with the previous period for comparison."""
    return await _respond(dashboard, "stripe-revenue", response)


@router.get("/stripe-transactions")
async def stripe_transactions(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    return await _respond(dashboard, "stripe-transactions", response)


@router.get("/stripe-subscriptions")
async def stripe_subscriptions(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    return await _respond(dashboard, "stripe-subscriptions", response)


@router.get("/stripe-revenue-history")
async def stripe_revenue_history(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    return await _respond(dashboard, "stripe-revenue-history", response)


@router.get("/stripe-subscriptions-history")
async def stripe_subscriptions_history(response: Response, dashboard: Dashboard = Depends(get_dashboard)):
    return await _respond(dashboard, "stripe-subscriptions-history", response)

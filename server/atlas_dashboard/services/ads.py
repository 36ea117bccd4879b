"""Campaign metrics read from the Google Ads API."""

import asyncio
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional

from loguru import logger

from ..config import Settings
from .comparison import trend_from_ratio
from .dates import label_en, local_now
from .errors import NotConfiguredError, UpstreamFetchError


def _window(today: date, first: int, last: int) -> str:
    """GAQL date condition for the days ``first`` to ``last`` days before ``today``."""
    start = (today - timedelta(days=first)).isoformat()
    end = (today - timedelta(days=last)).isoformat()
    return f"segments.date BETWEEN '{start}' AND '{end}'"


def _ctr(clicks: float, impressions: float) -> float:
    return clicks / impressions * 100 if impressions else 0.0


def _roas(cost_micros: float, conversions_value: float) -> float:
    cost = cost_micros / 1_000_000
    return conversions_value / cost if cost else 0.0


class AdsMetrics:
    """Runs GAQL queries against the configured Google Ads customer."""

    def __init__(
        self,
        settings: Settings,
        service: Any = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings
        self._service = service
        self._now = now

    @property
    def configured(self) -> bool:
        return self._service is not None or self.settings.ads_configured

    @property
    def customer_id(self) -> str:
        return self.settings.google_ads_customer_id.replace("-", "")

    def _ads_service(self) -> Any:
        if self._service is None:
            if not self.settings.ads_configured:
                raise NotConfiguredError("Google Ads credentials not configured")
            from google.ads.googleads.client import GoogleAdsClient

            config = {
                "developer_token": self.settings.google_ads_developer_token,
                "client_id": self.settings.google_ads_client_id,
                "client_secret": self.settings.google_ads_client_secret,
                "refresh_token": self.settings.google_ads_refresh_token,
                "use_proto_plus": True,
            }
            if self.settings.google_ads_login_customer_id:
                config["login_customer_id"] = self.settings.google_ads_login_customer_id.replace("-", "")
            client = GoogleAdsClient.load_from_dict(config)
            self._service = client.get_service("GoogleAdsService")
        return self._service

    def _today(self) -> date:
        return local_now(self.settings.dashboard_timezone, self._now() if self._now else None).date()

    async def _search(self, query: str) -> list:
        service = self._ads_service()
        try:
            # The Ads client is synchronous
            return await asyncio.to_thread(
                lambda: list(service.search(customer_id=self.customer_id, query=query))
            )
        except Exception as exc:
            if "invalid_grant" in str(exc):
                logger.info("Google Ads refresh token expired")
                raise UpstreamFetchError("Google Ads refresh token expired") from exc
            raise

    async def _totals(self, fields: tuple[str, str], condition: str) -> tuple[float, float]:
        rows = await self._search(
            f"SELECT metrics.{fields[0]}, metrics.{fields[1]} FROM campaign WHERE {condition}"
        )
        first = sum(float(getattr(row.metrics, fields[0]) or 0) for row in rows)
        second = sum(float(getattr(row.metrics, fields[1]) or 0) for row in rows)
        return first, second

    async def ctr_week(self) -> dict:
        """Click-through rate of the last 7 days against the 7 days before."""
        today = self._today()
        (clicks, impressions), (prev_clicks, prev_impressions) = await asyncio.gather(
            self._totals(("clicks", "impressions"), _window(today, 7, 1)),
            self._totals(("clicks", "impressions"), _window(today, 14, 8)),
        )
        ctr = _ctr(clicks, impressions)
        return {
            "value": round(ctr, 2),
            "trend": trend_from_ratio(ctr, _ctr(prev_clicks, prev_impressions)),
        }

    async def roas_week(self) -> dict:
        """Return on ad spend of the last 7 days against the 7 days before."""
        today = self._today()
        (cost, value), (prev_cost, prev_value) = await asyncio.gather(
            self._totals(("cost_micros", "conversions_value"), _window(today, 7, 1)),
            self._totals(("cost_micros", "conversions_value"), _window(today, 14, 8)),
        )
        roas = _roas(cost, value)
        return {
            "value": round(roas, 2),
            "trend": trend_from_ratio(roas, _roas(prev_cost, prev_value)),
        }

    async def ctr_daily(self) -> list[dict]:
        """Click-through rate per day over the last 7 days."""
        rows = await self._search(
            "SELECT metrics.clicks, metrics.impressions, segments.date "
            f"FROM campaign WHERE {_window(self._today(), 7, 1)} ORDER BY segments.date"
        )
        by_day: dict[str, list[float]] = defaultdict(lambda: [0.0, 0.0])
        for row in rows:
            totals = by_day[row.segments.date]
            totals[0] += float(row.metrics.clicks or 0)
            totals[1] += float(row.metrics.impressions or 0)

        return [
            {
                "date": label_en(date.fromisoformat(day)),
                "ctr": round(_ctr(clicks, impressions), 2),
            }
            for day, (clicks, impressions) in sorted(by_day.items())
        ]

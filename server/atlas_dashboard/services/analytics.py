"""Traffic metrics read from the Google Analytics 4 Data API."""

import asyncio
from typing import Any, Optional

from google.analytics.data_v1beta import BetaAnalyticsDataAsyncClient
from google.analytics.data_v1beta.types import (
    DateRange,
    Dimension,
    Metric,
    MinuteRange,
    OrderBy,
    RunRealtimeReportRequest,
    RunReportRequest,
)

from ..config import Settings
from .comparison import comparison, percentage_change
from .dates import label_es, parse_compact_date
from .errors import NotConfiguredError, UpstreamFetchError


def _metric_value(response: Any, index: int = 0) -> int:
    """First row's metric as an int, 0 when the report is empty."""
    rows = list(response.rows or [])
    if not rows:
        return 0
    return int(rows[0].metric_values[index].value or 0)


def _breakdown(response: Any, label: str, limit: int) -> list[dict]:
    rows = [
        {
            label: row.dimension_values[0].value or "Unknown",
            "users": int(row.metric_values[0].value or 0),
        }
        for row in (response.rows or [])
    ]
    if not rows:
        raise UpstreamFetchError(f"Analytics returned no {label} rows")
    return rows[:limit]


class AnalyticsMetrics:
    """Runs GA4 reports for the dashboard cards."""

    def __init__(self, settings: Settings, client: Any = None):
        self.settings = settings
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.settings.ga_property_id)

    @property
    def property_name(self) -> str:
        if not self.settings.ga_property_id:
            raise NotConfiguredError("GA_PROPERTY_ID not configured")
        return f"properties/{self.settings.ga_property_id}"

    def _analytics(self) -> Any:
        if self._client is None:
            credentials = self.settings.google_application_credentials
            if credentials:
                self._client = BetaAnalyticsDataAsyncClient.from_service_account_file(credentials)
            else:
                self._client = BetaAnalyticsDataAsyncClient()
        return self._client

    async def _report(
        self,
        metric: str,
        start: str,
        end: str,
        dimension: Optional[str] = None,
        order_by_dimension: bool = False,
        limit: int = 0,
    ) -> Any:
        request = RunReportRequest(
            property=self.property_name,
            date_ranges=[DateRange(start_date=start, end_date=end)],
            metrics=[Metric(name=metric)],
        )
        if dimension:
            request.dimensions = [Dimension(name=dimension)]
            if order_by_dimension:
                order = OrderBy(dimension=OrderBy.DimensionOrderBy(dimension_name=dimension))
            else:
                order = OrderBy(metric=OrderBy.MetricOrderBy(metric_name=metric), desc=True)
            request.order_bys = [order]
        if limit:
            request.limit = limit
        return await self._analytics().run_report(request=request)

    async def _realtime(self, start_minutes_ago: int, end_minutes_ago: int) -> int:
        request = RunRealtimeReportRequest(
            property=self.property_name,
            metrics=[Metric(name="activeUsers")],
            minute_ranges=[MinuteRange(
                start_minutes_ago=start_minutes_ago,
                end_minutes_ago=end_minutes_ago,
            )],
        )
        response = await self._analytics().run_realtime_report(request=request)
        return _metric_value(response)

    async def active_users_realtime(self) -> int:
        """Users active in the last 29 minutes (the GA Standard realtime limit)."""
        return await self._realtime(29, 0)

    async def active_users_comparison(self) -> dict:
        """Realtime users against the older half of the realtime window."""
        current, previous = await asyncio.gather(
            self._realtime(29, 0),
            self._realtime(29, 15),
        )
        return {
            "value": current,
            "previousValue": previous,
            "percentageChange": percentage_change(current, previous),
        }

    async def registered_users(self) -> int:
        response = await self._report("totalUsers", "30daysAgo", "today")
        return _metric_value(response)

    async def page_views_yesterday(self) -> int:
        response = await self._report("screenPageViews", "yesterday", "yesterday")
        return _metric_value(response)

    async def page_views_by_day(self) -> list[dict]:
        """Daily page views for the last two weeks, up to yesterday."""
        response = await self._report(
            "screenPageViews", "14daysAgo", "yesterday",
            dimension="date", order_by_dimension=True,
        )
        days = []
        for row in response.rows or []:
            compact = row.dimension_values[0].value
            days.append({
                "date": label_es(parse_compact_date(compact)),
                "views": int(row.metric_values[0].value or 0),
                "fullDate": compact,
            })
        if not days:
            raise UpstreamFetchError("Analytics returned no daily page views")
        return days

    async def _compare_ranges(self, current: tuple[str, str], previous: tuple[str, str]) -> dict:
        current_response, previous_response = await asyncio.gather(
            self._report("totalUsers", *current),
            self._report("totalUsers", *previous),
        )
        return comparison(_metric_value(current_response), _metric_value(previous_response))

    async def active_users_24h(self) -> dict:
        return await self._compare_ranges(("1daysAgo", "today"), ("2daysAgo", "1daysAgo"))

    async def active_users_7days(self) -> dict:
        return await self._compare_ranges(("7daysAgo", "today"), ("14daysAgo", "7daysAgo"))

    async def active_users_yesterday(self) -> dict:
        return await self._compare_ranges(("yesterday", "yesterday"), ("2daysAgo", "2daysAgo"))

    async def operating_systems(self, limit: int = 6) -> list[dict]:
        response = await self._report("activeUsers", "28daysAgo", "today", dimension="operatingSystem")
        return _breakdown(response, "os", limit)

    async def countries(self, limit: int = 8) -> list[dict]:
        response = await self._report("activeUsers", "28daysAgo", "today", dimension="country")
        return _breakdown(response, "country", limit)

"""Metric catalog and the cached loading path every endpoint shares."""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Optional

from loguru import logger

from ..config import Settings
from .ads import AdsMetrics
from .analytics import AnalyticsMetrics
from .atlas_api import AtlasClient
from .cache import Cache, CacheStatus, make_key
from .errors import ColdMissError
from .stripe_metrics import StripeMetrics
from .synthetic import SyntheticData


class DataSource(str, Enum):
    """Whether a payload came from the upstream or was generated locally."""
    LIVE = "live"
    SYNTHETIC = "synthetic"


class UnknownMetricError(KeyError):
    """No metric with that name is in the catalog."""


@dataclass
class Providers:
    """The upstream clients the dashboard reads from."""
    stripe: StripeMetrics
    analytics: AnalyticsMetrics
    ads: AdsMetrics
    atlas: AtlasClient


def build_providers(settings: Settings) -> Providers:
    return Providers(
        stripe=StripeMetrics(settings),
        analytics=AnalyticsMetrics(settings),
        ads=AdsMetrics(settings),
        atlas=AtlasClient(settings),
    )


@dataclass
class MetricResult:
    payload: Any
    source: DataSource
    cache_status: Optional[CacheStatus] = None


@dataclass(frozen=True)
class MetricSpec:
    """One dashboard metric.

    ``live`` reads the upstream; ``synthetic`` (optional) produces a payload of
    the same shape when the upstream has never answered for this metric.
    """
    name: str
    tier: str
    live: Callable[["Dashboard"], Awaitable[Any]]
    synthetic: Optional[Callable[["Dashboard"], Any]] = None


async def _registered_users(d: "Dashboard") -> dict:
    return {"value": await d.providers.analytics.registered_users()}


async def _registered_users_history(d: "Dashboard") -> dict:
    base = await d.providers.analytics.registered_users()
    return d.synthetic.jittered_series(base, spread=50)


async def _page_views_today(d: "Dashboard") -> dict:
    return {"value": await d.providers.analytics.page_views_yesterday()}


async def _page_views_by_day(d: "Dashboard") -> dict:
    return {"data": await d.providers.analytics.page_views_by_day()}


async def _device_breakdown(d: "Dashboard") -> dict:
    return {"data": await d.providers.analytics.operating_systems()}


async def _geographic_breakdown(d: "Dashboard") -> dict:
    return {"data": await d.providers.analytics.countries()}


async def _ctr_daily(d: "Dashboard") -> dict:
    return {"data": await d.providers.ads.ctr_daily()}


async def _paid_users_month(d: "Dashboard") -> dict:
    # No paid-user source exists yet; the goals screen shows zero.
    return {"value": 0}


async def _stripe_revenue_history(d: "Dashboard") -> dict:
    base = await d.providers.stripe.current_revenue()
    return d.synthetic.jittered_series(base, spread=100, offset=d.settings.external_revenue_usd)


async def _stripe_subscriptions_history(d: "Dashboard") -> dict:
    base = await d.providers.stripe.active_subscription_count()
    return d.synthetic.jittered_series(base, spread=3, offset=d.settings.external_subscribers)


CATALOG: dict[str, MetricSpec] = {
    spec.name: spec
    for spec in [
        MetricSpec(
            "active-users-30min", "realtime",
            lambda d: d.providers.analytics.active_users_comparison(),
            lambda d: d.synthetic.active_users_30min(),
        ),
        MetricSpec(
            "active-users-24h", "default",
            lambda d: d.providers.analytics.active_users_24h(),
            lambda d: d.synthetic.active_users_24h(),
        ),
        MetricSpec(
            "active-users-7days", "default",
            lambda d: d.providers.analytics.active_users_7days(),
            lambda d: d.synthetic.active_users_7days(),
        ),
        MetricSpec(
            "active-users-yesterday", "default",
            lambda d: d.providers.analytics.active_users_yesterday(),
            lambda d: d.synthetic.active_users_yesterday(),
        ),
        MetricSpec(
            "registered-users", "default",
            _registered_users,
            lambda d: d.synthetic.registered_users(),
        ),
        MetricSpec(
            "registered-users-history", "stable",
            _registered_users_history,
            lambda d: d.synthetic.empty_series(),
        ),
        MetricSpec(
            "page-views-today", "default",
            _page_views_today,
            lambda d: d.synthetic.page_views_yesterday(),
        ),
        MetricSpec(
            "page-views-by-hour", "default",
            _page_views_by_day,
            lambda d: d.synthetic.page_views_by_day(),
        ),
        MetricSpec(
            "device-breakdown", "stable",
            _device_breakdown,
            lambda d: d.synthetic.device_breakdown(),
        ),
        MetricSpec(
            "geographic-breakdown", "stable",
            _geographic_breakdown,
            lambda d: d.synthetic.geographic_breakdown(),
        ),
        MetricSpec(
            "ctr-week", "default",
            lambda d: d.providers.ads.ctr_week(),
            lambda d: d.synthetic.ctr_week(),
        ),
        MetricSpec(
            "roas-week", "default",
            lambda d: d.providers.ads.roas_week(),
            lambda d: d.synthetic.roas_week(),
        ),
        MetricSpec(
            "ctr-daily-7days", "default",
            _ctr_daily,
            lambda d: d.synthetic.ctr_daily(),
        ),
        MetricSpec(
            "paid-users-month", "default",
            _paid_users_month,
            lambda d: {"value": 0},
        ),
        MetricSpec(
            "stripe-revenue", "default",
            lambda d: d.providers.stripe.revenue(),
        ),
        MetricSpec(
            "stripe-transactions", "no_cache",
            lambda d: d.providers.stripe.transactions(),
        ),
        MetricSpec(
            "stripe-subscriptions", "default",
            lambda d: d.providers.stripe.subscriptions(),
            lambda d: d.synthetic.stripe_subscriptions(),
        ),
        MetricSpec(
            "stripe-revenue-history", "stable",
            _stripe_revenue_history,
            lambda d: d.synthetic.empty_series(),
        ),
        MetricSpec(
            "stripe-subscriptions-history", "stable",
            _stripe_subscriptions_history,
            lambda d: d.synthetic.empty_series(),
        ),
        MetricSpec(
            "atlas-data", "default",
            lambda d: d.providers.atlas.dashboard(),
        ),
    ]
}


def metric_key(name: str) -> str:
    """Cache key of a metric, the URL path the client requests it from."""
    if name == "atlas-data":
        return make_key("/api/atlas-data")
    return make_key(f"/api/metrics/{name}")


class Dashboard:
    """Loads catalog metrics through the shared cache."""

    def __init__(
        self,
        settings: Settings,
        cache: Cache,
        providers: Providers,
        synthetic: Optional[SyntheticData] = None,
    ):
        self.settings = settings
        self.cache = cache
        self.providers = providers
        self.synthetic = synthetic or SyntheticData(settings.dashboard_timezone)

    def spec(self, name: str) -> MetricSpec:
        try:
            return CATALOG[name]
        except KeyError:
            raise UnknownMetricError(name) from None

    async def load(self, name: str) -> MetricResult:
        """Read a metric through the cache, falling back to synthetic data on a cold miss."""
        spec = self.spec(name)

        async def fetch_live(_key: str) -> Any:
            return await spec.live(self)

        try:
            payload, status = await self.cache.fetch_with_status(
                metric_key(name), self.settings.ttl_for(spec.tier), fetch_live,
            )
        except ColdMissError:
            if spec.synthetic is None:
                raise
            logger.warning("Serving synthetic data for {}", name)
            return MetricResult(spec.synthetic(self), DataSource.SYNTHETIC)

        if name == "stripe-transactions" and not payload:
            logger.info("No Stripe transactions in the last 30 days, serving samples")
            return MetricResult(self.synthetic.sample_transactions(), DataSource.SYNTHETIC, status)
        return MetricResult(payload, DataSource.LIVE, status)

    async def prefetch(self, names: Iterable[str]) -> dict[str, str]:
        """Warm the cache for several metrics at once; report each outcome."""
        names = list(names)
        results = await asyncio.gather(
            *(self.load(name) for name in names),
            return_exceptions=True,
        )
        outcome = {}
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                logger.warning("Prefetch of {} failed: {}", name, result)
                outcome[name] = "error"
            elif result.source is DataSource.SYNTHETIC:
                outcome[name] = DataSource.SYNTHETIC.value
            else:
                outcome[name] = result.cache_status.value
        return outcome

    def invalidate(self, name: str) -> bool:
        self.spec(name)
        return self.cache.invalidate(metric_key(name))

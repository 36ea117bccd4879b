"""Shared fixtures: settings without .env lookup, a manual clock and fake providers."""

import random
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from atlas_dashboard.config import Settings
from atlas_dashboard.main import create_app
from atlas_dashboard.services.cache import Cache
from atlas_dashboard.services.dashboard import Dashboard, Providers
from atlas_dashboard.services.errors import NotConfiguredError, UpstreamFetchError
from atlas_dashboard.services.synthetic import SyntheticData


# 2026-10-18 16:00 UTC is 12:00 in Puerto Rico (UTC-4, no DST)
FIXED_NOW = datetime(2026, 10, 18, 16, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock in seconds."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAnalytics:
    configured = True

    def __init__(self):
        self.calls = {}
        self.fail = False

    def _record(self, name):
        self.calls[name] = self.calls.get(name, 0) + 1
        if self.fail:
            raise UpstreamFetchError("analytics unavailable")

    async def active_users_comparison(self):
        self._record("active_users_comparison")
        return {"value": 42, "previousValue": 21, "percentageChange": 100.0}

    async def active_users_realtime(self):
        self._record("active_users_realtime")
        return 42

    async def active_users_24h(self):
        self._record("active_users_24h")
        return {"value": 300, "previousValue": 250, "percentageChange": 20.0, "trend": "up"}

    async def active_users_7days(self):
        self._record("active_users_7days")
        return {"value": 1500, "previousValue": 1500, "percentageChange": 0.0, "trend": "neutral"}

    async def active_users_yesterday(self):
        self._record("active_users_yesterday")
        return {"value": 100, "previousValue": 200, "percentageChange": -50.0, "trend": "down"}

    async def registered_users(self):
        self._record("registered_users")
        return 27000

    async def page_views_yesterday(self):
        self._record("page_views_yesterday")
        return 3100

    async def page_views_by_day(self):
        self._record("page_views_by_day")
        return [{"date": "17 oct", "views": 3100, "fullDate": "20261017"}]

    async def operating_systems(self):
        self._record("operating_systems")
        return [{"os": "Windows", "users": 10}]

    async def countries(self):
        self._record("countries")
        return [{"country": "Puerto Rico", "users": 10}]


class FakeAds:
    configured = True

    def __init__(self):
        self.fail = False

    async def ctr_week(self):
        if self.fail:
            raise NotConfiguredError("Google Ads credentials not configured")
        return {"value": 3.25, "trend": "up"}

    async def roas_week(self):
        if self.fail:
            raise NotConfiguredError("Google Ads credentials not configured")
        return {"value": 4.1, "trend": "neutral"}

    async def ctr_daily(self):
        if self.fail:
            raise NotConfiguredError("Google Ads credentials not configured")
        return [{"date": "Oct 17", "ctr": 2.5}]


class FakeStripe:
    configured = True

    def __init__(self):
        self.fail = False
        self.transaction_rows = [{"amount": 49.0, "email": "buyer@example.com"}]

    def _check(self):
        if self.fail:
            raise NotConfiguredError("Stripe secret key not configured")

    async def revenue(self):
        self._check()
        return {"totalRevenue": 1000.0, "currency": "USD"}

    async def transactions(self):
        self._check()
        return list(self.transaction_rows)

    async def subscriptions(self):
        self._check()
        return {"active_count": 10, "churn_rate": 0.0, "mrr": 490.0, "latest_subscriptions": []}

    async def current_revenue(self):
        self._check()
        return 1000.0

    async def active_subscription_count(self):
        self._check()
        return 10

    async def revenue_periods(self):
        self._check()
        return {"timeZone": "America/Puerto_Rico", "periods": {}}


class FakeAtlas:
    configured = True

    def __init__(self):
        self.fail = False
        self.calls = 0

    async def dashboard(self):
        self.calls += 1
        if self.fail:
            raise UpstreamFetchError("Atlas API returned HTTP 502")
        return {"properties": 1200, "users": 350}


@pytest.fixture
def settings():
    return Settings(_env_file=None, dashboard_timezone="America/Puerto_Rico")


@pytest.fixture
def clock():
    return FakeClock(1000.0)


@pytest.fixture
def providers():
    return Providers(
        stripe=FakeStripe(),
        analytics=FakeAnalytics(),
        ads=FakeAds(),
        atlas=FakeAtlas(),
    )


@pytest.fixture
def synthetic():
    return SyntheticData("America/Puerto_Rico", rng=random.Random(7), now=lambda: FIXED_NOW)


@pytest.fixture
def cache(clock):
    return Cache(clock=clock)


@pytest.fixture
def dashboard(settings, cache, providers, synthetic):
    return Dashboard(settings, cache, providers, synthetic)


@pytest.fixture
def make_client(settings, cache, providers):
    """Build a TestClient around an app wired with the fake providers."""

    def _make(**overrides):
        app_settings = settings.model_copy(update=overrides) if overrides else settings
        app = create_app(settings=app_settings, providers=providers, cache=cache)
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client):
    return make_client()

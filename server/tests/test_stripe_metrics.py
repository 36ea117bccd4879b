"""Tests for the Stripe metrics provider against an in-memory fake client."""

from datetime import datetime, timezone

import pytest
import stripe

from atlas_dashboard.services.errors import NotConfiguredError
from atlas_dashboard.services.stripe_metrics import StripeMetrics

from conftest import FIXED_NOW


def ts(*args):
    return int(datetime(*args, tzinfo=timezone.utc).timestamp())


class FakeService:
    """Mimics a StripeClient list service with cursor pagination."""

    def __init__(self, items=None, customers=None):
        self.items = items or []
        self.customers = customers or {}
        self.requests = []

    def _matches(self, item, params):
        for field in ("status", "type"):
            if field in params and item.get(field) != params[field]:
                return False
        created = params.get("created", {})
        if "gte" in created and item["created"] < created["gte"]:
            return False
        if "lt" in created and item["created"] >= created["lt"]:
            return False
        return True

    async def list_async(self, params=None):
        params = params or {}
        self.requests.append(params)
        items = [item for item in self.items if self._matches(item, params)]
        start = 0
        if "starting_after" in params:
            ids = [item["id"] for item in items]
            start = ids.index(params["starting_after"]) + 1
        limit = params.get("limit", 10)
        return {"data": items[start:start + limit], "has_more": start + limit < len(items)}

    async def retrieve_async(self, customer_id, params=None):
        customer = self.customers.get(customer_id)
        if customer is None:
            raise stripe.StripeError("No such customer")
        return customer


class FakeStripeClient:
    def __init__(self, **services):
        self.charges = services.get("charges", FakeService())
        self.balance_transactions = services.get("balance_transactions", FakeService())
        self.subscriptions = services.get("subscriptions", FakeService())
        self.customers = services.get("customers", FakeService())
        self.payment_intents = services.get("payment_intents", FakeService())


def metrics_for(settings, **services):
    return StripeMetrics(settings, client=FakeStripeClient(**services), now=lambda: FIXED_NOW)


@pytest.mark.asyncio
async def test_list_all_follows_cursors(settings):
    service = FakeService([{"id": f"ch_{i}", "created": ts(2026, 10, 1)} for i in range(250)])
    metrics = metrics_for(settings, charges=service)

    items = await metrics.list_all("charges", {})

    assert len(items) == 250
    assert len(service.requests) == 3
    assert service.requests[0]["limit"] == 100
    assert service.requests[1]["starting_after"] == "ch_99"
    assert service.requests[2]["starting_after"] == "ch_199"


@pytest.mark.asyncio
async def test_revenue_converts_cop_and_compares_previous_period(settings):
    charges = FakeService([
        {"id": "ch_1", "amount": 10000, "currency": "usd", "status": "succeeded", "created": ts(2026, 10, 1)},
        {"id": "ch_2", "amount": 4000000, "currency": "cop", "status": "succeeded", "created": ts(2026, 10, 2)},
        {"id": "ch_3", "amount": 5000, "currency": "usd", "status": "failed", "created": ts(2026, 10, 3)},
        # Before the revenue window, inside the 30-day count window
        {"id": "ch_4", "amount": 2000, "currency": "usd", "status": "succeeded", "created": ts(2026, 9, 19)},
    ])
    balance = FakeService([
        {"id": "txn_1", "net": 5000, "type": "charge", "status": "available", "created": ts(2026, 9, 1)},
        {"id": "txn_2", "net": 9999, "type": "charge", "status": "pending", "created": ts(2026, 9, 2)},
        {"id": "txn_3", "net": 5000, "type": "charge", "status": "available", "created": ts(2026, 10, 5)},
    ])
    metrics = metrics_for(settings, charges=charges, balance_transactions=balance)

    revenue = await metrics.revenue()

    assert revenue["grossRevenue"] == 110.0
    assert revenue["totalFees"] == 3.19
    assert revenue["totalRevenue"] == 106.81
    assert revenue["currencyBreakdown"] == {
        "usd": 100.0,
        "cop": 40000.0,
        "copInUSD": 10.0,
        "exchangeRate": 4000.0,
    }
    assert revenue["transactionCount"] == 3
    assert revenue["previousRevenue"] == 50.0
    assert revenue["previousTransactionCount"] == 1
    assert revenue["percentageChange"] == 113.6
    assert revenue["transactionPercentageChange"] == 200.0
    assert revenue["periodStart"] == "2026-09-21T12:00:00-04:00"
    assert revenue["timeZone"] == "America/Puerto_Rico"


@pytest.mark.asyncio
async def test_transactions_resolve_customers_and_fall_back_to_billing(settings):
    charges = FakeService([
        {
            "id": "ch_1", "amount": 4900, "currency": "usd", "status": "succeeded",
            "created": ts(2026, 10, 18, 3, 5), "customer": "cus_1", "billing_details": {},
        },
        {
            "id": "ch_2", "amount": 1500, "currency": "usd", "status": "succeeded",
            "created": ts(2026, 10, 17), "customer": "cus_gone",
            "billing_details": {"name": "Card Holder", "email": "holder@example.com"},
        },
        {
            "id": "ch_3", "amount": 900, "currency": "usd", "status": "failed",
            "created": ts(2026, 10, 16), "customer": None, "billing_details": {},
        },
    ])
    customers = FakeService(customers={"cus_1": {"name": "Ana Rivera", "email": "ana@example.com"}})
    metrics = metrics_for(settings, charges=charges, customers=customers)

    rows = await metrics.transactions()

    assert rows[0] == {
        "amount": 49.0,
        "email": "ana@example.com",
        "customer_name": "Ana Rivera",
        "date": "2026-10-17",
        "time": "11:05 PM",
        "currency": "USD",
        "status": "succeeded",
        "coupon_name": None,
    }
    assert rows[1]["customer_name"] == "Card Holder"
    assert rows[1]["email"] == "holder@example.com"
    assert rows[2]["email"] == "No email available"
    assert charges.requests[0]["limit"] == 50


@pytest.mark.asyncio
async def test_subscriptions_churn_and_mrr(settings):
    def price(amount, interval, nickname="Plan"):
        return {"items": {"data": [{"price": {
            "unit_amount": amount,
            "currency": "usd",
            "nickname": nickname,
            "recurring": {"interval": interval},
        }}]}}

    subscriptions = FakeService([
        {
            "id": "sub_1", "status": "active", "created": ts(2026, 10, 10),
            "customer": {"name": "Ana Rivera", "email": "ana@example.com"},
            **price(2900, "month", "Pro Monthly"),
        },
        {"id": "sub_2", "status": "active", "created": ts(2026, 5, 1), "customer": "cus_2", **price(12000, "year")},
        {"id": "sub_3", "status": "canceled", "created": ts(2026, 10, 1), "customer": "cus_3", **price(2900, "month")},
    ])
    metrics = metrics_for(settings, subscriptions=subscriptions)

    result = await metrics.subscriptions()

    assert result["active_count"] == 2
    assert result["churn_rate"] == 33.33
    assert result["mrr"] == 39.0
    latest = result["latest_subscriptions"]
    assert len(latest) == 3
    assert latest[0]["customer_name"] == "Ana Rivera"
    assert latest[0]["amount"] == 29.0
    assert latest[0]["product_name"] == "Pro Monthly"
    assert latest[0]["created"] == "2026-10-10T00:00:00+00:00"
    assert latest[1]["customer_name"] == "Unknown"


@pytest.mark.asyncio
async def test_current_revenue_counts_succeeded_intents(settings):
    intents = FakeService([
        {"id": "pi_1", "amount": 4900, "status": "succeeded", "created": ts(2026, 10, 10)},
        {"id": "pi_2", "amount": 9900, "status": "requires_payment_method", "created": ts(2026, 10, 11)},
        {"id": "pi_3", "amount": 4900, "status": "succeeded", "created": ts(2026, 8, 1)},
    ])
    metrics = metrics_for(settings, payment_intents=intents)

    assert await metrics.current_revenue() == 49.0


@pytest.mark.asyncio
async def test_revenue_periods(settings):
    balance = FakeService([
        {"id": "txn_1", "amount": 10000, "net": 9680, "fee": 320, "type": "charge",
         "status": "available", "created": ts(2026, 10, 5)},
        {"id": "txn_2", "amount": 5000, "net": 4825, "fee": 175, "type": "charge",
         "status": "available", "created": ts(2026, 9, 19, 12)},
    ])
    metrics = metrics_for(settings, balance_transactions=balance)

    report = await metrics.revenue_periods()

    periods = report["periods"]
    assert periods["currentMonth"]["count"] == 1
    assert periods["currentMonth"]["netRevenue"] == 96.8
    assert periods["lastThirtyDays"]["count"] == 2
    assert periods["lastThirtyDays"]["grossRevenue"] == 150.0
    assert periods["lastThirtyDays"]["totalFees"] == 4.95
    assert periods["lastFourWeeks"]["count"] == 1


@pytest.mark.asyncio
async def test_missing_key_is_not_configured():
    from atlas_dashboard.config import Settings

    metrics = StripeMetrics(Settings(_env_file=None, stripe_secret_key=""))

    assert metrics.configured is False
    with pytest.raises(NotConfiguredError):
        await metrics.revenue()

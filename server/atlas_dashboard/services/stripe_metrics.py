"""Revenue, transaction and subscription metrics read from Stripe."""

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import stripe
from loguru import logger

from ..config import Settings
from .comparison import percentage_change
from .dates import days_before, local_date_time, local_now, start_of_month, to_unix
from .errors import NotConfiguredError


PAGE_SIZE = 100


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read a field from a Stripe object (or plain dict), defaulting on absence."""
    try:
        value = obj[name]
    except (KeyError, TypeError, IndexError):
        return default
    return default if value is None else value


def _first_price(subscription: Any) -> Any:
    items = _field(_field(subscription, "items"), "data", [])
    if not items:
        return None
    return _field(items[0], "price")


class StripeMetrics:
    """Thin wrapper over the Stripe API shaped for the dashboard cards."""

    def __init__(
        self,
        settings: Settings,
        client: Any = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings
        self._client = client
        self._now = now

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self.settings.stripe_secret_key)

    def _stripe(self) -> Any:
        if self._client is None:
            if not self.settings.stripe_secret_key:
                raise NotConfiguredError("Stripe secret key not configured")
            self._client = stripe.StripeClient(self.settings.stripe_secret_key)
        return self._client

    def _local_now(self) -> datetime:
        return local_now(self.settings.dashboard_timezone, self._now() if self._now else None)

    async def list_all(self, resource: str, params: dict) -> list:
        """Collect every object of a list endpoint, following ``starting_after`` cursors."""
        service = getattr(self._stripe(), resource)
        query = {**params, "limit": PAGE_SIZE}
        items: list = []
        while True:
            page = await service.list_async(params=query)
            batch = _field(page, "data", [])
            items.extend(batch)
            if not _field(page, "has_more", False) or not batch:
                break
            query = {**query, "starting_after": _field(batch[-1], "id")}
        logger.debug("Stripe {}: {} objects", resource, len(items))
        return items

    async def revenue(self) -> dict:
        """Net revenue for the last four weeks compared with the four weeks before."""
        local = self._local_now()
        current_start = days_before(local, 27, hour=12)
        previous_start = days_before(local, 56)
        count_start = days_before(local, 30)

        charges, previous_transactions, recent_charges = await asyncio.gather(
            self.list_all("charges", {"created": {"gte": to_unix(current_start)}}),
            self.list_all("balance_transactions", {
                "created": {"gte": to_unix(previous_start), "lt": to_unix(current_start)},
                "type": "charge",
            }),
            self.list_all("charges", {"created": {"gte": to_unix(count_start)}}),
        )

        rate = self.settings.cop_to_usd_rate
        usd_revenue = cop_revenue = cop_in_usd = 0.0
        gross = 0.0
        for charge in charges:
            if _field(charge, "status") != "succeeded":
                continue
            amount = _field(charge, "amount", 0) / 100
            currency = _field(charge, "currency", "usd").upper()
            if currency == "COP":
                cop_revenue += amount
                amount = amount / rate
                cop_in_usd += amount
            elif currency == "USD":
                usd_revenue += amount
            gross += amount

        fees = gross * self.settings.stripe_fee_rate
        net = gross - fees

        available = [t for t in previous_transactions if _field(t, "status") == "available"]
        previous_revenue = sum(_field(t, "net", 0) for t in available) / 100

        transaction_count = sum(1 for c in recent_charges if _field(c, "status") == "succeeded")
        previous_count = len(available)

        return {
            "totalRevenue": round(net, 2),
            "transactionCount": transaction_count,
            "averageTransaction": round(net / transaction_count, 2) if transaction_count else 0,
            "currency": "USD",
            "percentageChange": percentage_change(net, previous_revenue),
            "previousRevenue": round(previous_revenue, 2),
            "transactionPercentageChange": percentage_change(transaction_count, previous_count),
            "previousTransactionCount": previous_count,
            "currencyBreakdown": {
                "usd": round(usd_revenue, 2),
                "cop": round(cop_revenue, 2),
                "copInUSD": round(cop_in_usd, 2),
                "exchangeRate": rate,
            },
            "grossRevenue": round(gross, 2),
            "totalFees": round(fees, 2),
            "feePercentage": round(fees / gross * 100, 1) if gross else 0,
            "periodStart": current_start.isoformat(),
            "periodEnd": local.isoformat(),
            "timeZone": self.settings.dashboard_timezone,
        }

    async def _customer_details(self, customer_id: str) -> tuple[Optional[str], Optional[str]]:
        try:
            customer = await self._stripe().customers.retrieve_async(customer_id)
        except stripe.StripeError as exc:
            logger.warning("Could not retrieve customer {}: {}", customer_id, exc)
            return None, None
        if _field(customer, "deleted", False):
            return None, None
        return _field(customer, "name"), _field(customer, "email")

    async def transactions(self, limit: int = 50) -> list[dict]:
        """Most recent charges of the last 30 days, dated in the dashboard timezone."""
        since = days_before(self._local_now(), 30)
        page = await self._stripe().charges.list_async(
            params={"limit": limit, "created": {"gte": to_unix(since)}}
        )
        charges = _field(page, "data", [])

        async def lookup(charge: Any) -> tuple[Optional[str], Optional[str]]:
            customer = _field(charge, "customer")
            if isinstance(customer, str):
                return await self._customer_details(customer)
            return None, None

        details = await asyncio.gather(*(lookup(charge) for charge in charges))

        transactions = []
        for charge, (name, email) in zip(charges, details):
            billing = _field(charge, "billing_details", {})
            name = name or _field(billing, "name")
            email = email or _field(billing, "email")
            day, time_of_day = local_date_time(_field(charge, "created", 0), self.settings.dashboard_timezone)
            transactions.append({
                "amount": _field(charge, "amount", 0) / 100,
                "email": email or "No email available",
                "customer_name": name,
                "date": day,
                "time": time_of_day,
                "currency": _field(charge, "currency", "usd").upper(),
                "status": _field(charge, "status"),
                "coupon_name": None,
            })
        return transactions

    async def subscriptions(self) -> dict:
        """Active subscription count, churn over 30 days, MRR and the latest signups."""
        month_ago = to_unix(days_before(self._local_now(), 30))
        active, canceled, latest = await asyncio.gather(
            self.list_all("subscriptions", {"status": "active"}),
            self.list_all("subscriptions", {"status": "canceled", "created": {"gte": month_ago}}),
            self._stripe().subscriptions.list_async(params={"limit": 5, "expand": ["data.customer"]}),
        )

        total_active = len(active)
        total_canceled = len(canceled)
        churn = total_canceled / (total_active + total_canceled) * 100 if total_active else 0

        mrr = 0.0
        for subscription in active:
            price = _first_price(subscription)
            interval = _field(_field(price, "recurring"), "interval")
            amount = _field(price, "unit_amount", 0)
            if interval == "month":
                mrr += amount
            elif interval == "year":
                mrr += amount / 12

        latest_subscriptions = []
        for subscription in _field(latest, "data", []):
            price = _first_price(subscription)
            customer = _field(subscription, "customer")
            if isinstance(customer, str):
                customer = None
            latest_subscriptions.append({
                "id": _field(subscription, "id"),
                "customer_name": _field(customer, "name", "Unknown"),
                "customer_email": _field(customer, "email", ""),
                "amount": _field(price, "unit_amount", 0) / 100,
                "currency": _field(price, "currency", "usd"),
                "status": _field(subscription, "status"),
                "created": datetime.fromtimestamp(_field(subscription, "created", 0), tz=timezone.utc).isoformat(),
                "product_name": _field(price, "nickname", "Subscription"),
            })

        return {
            "active_count": total_active,
            "churn_rate": round(churn, 2),
            "mrr": round(mrr / 100, 2),
            "latest_subscriptions": latest_subscriptions,
        }

    async def current_revenue(self, days: int = 28) -> float:
        """Succeeded payment volume over the last ``days`` days, in dollars."""
        since = days_before(self._local_now(), days)
        intents = await self.list_all("payment_intents", {"created": {"gte": to_unix(since)}})
        return sum(_field(i, "amount", 0) for i in intents if _field(i, "status") == "succeeded") / 100

    async def active_subscription_count(self) -> int:
        return len(await self.list_all("subscriptions", {"status": "active"}))

    async def revenue_by_period(self, start: datetime, end: Optional[datetime] = None) -> dict:
        """Gross, net and fee totals of available charge transactions in a window."""
        created = {"gte": to_unix(start)}
        if end is not None:
            created["lt"] = to_unix(end)
        transactions = await self.list_all("balance_transactions", {"created": created, "type": "charge"})
        available = [t for t in transactions if _field(t, "status") == "available"]
        return {
            "count": len(available),
            "grossRevenue": round(sum(_field(t, "amount", 0) for t in available) / 100, 2),
            "netRevenue": round(sum(_field(t, "net", 0) for t in available) / 100, 2),
            "totalFees": round(sum(_field(t, "fee", 0) for t in available) / 100, 2),
            "periodStart": start.isoformat(),
            "periodEnd": (end or self._local_now()).isoformat(),
        }

    async def revenue_periods(self) -> dict:
        """Revenue over the last 4 weeks, the last 30 days and the current month."""
        local = self._local_now()
        four_weeks, thirty_days, month = await asyncio.gather(
            self.revenue_by_period(days_before(local, 28)),
            self.revenue_by_period(days_before(local, 30)),
            self.revenue_by_period(start_of_month(local)),
        )
        return {
            "timeZone": self.settings.dashboard_timezone,
            "generatedAt": local.isoformat(),
            "periods": {
                "lastFourWeeks": four_weeks,
                "lastThirtyDays": thirty_days,
                "currentMonth": month,
            },
        }

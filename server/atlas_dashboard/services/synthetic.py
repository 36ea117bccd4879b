"""Synthetic payloads served when an upstream has never answered.

The shapes mirror the live payloads so the client renders them unchanged;
the numbers are random draws within plausible ranges.
"""

import random
import string
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .comparison import comparison, percentage_change
from .dates import label_en, label_es, trailing_days


TRENDS = ["up", "down", "neutral"]

DEVICE_BREAKDOWN = [
    {"os": "Windows", "users": 11000},
    {"os": "iOS", "users": 6500},
    {"os": "Android", "users": 5700},
    {"os": "Macintosh", "users": 392},
    {"os": "Linux", "users": 119},
    {"os": "Chrome OS", "users": 62},
]

COUNTRY_BREAKDOWN = [
    {"country": "Puerto Rico", "users": 12000},
    {"country": "United States", "users": 11000},
    {"country": "Netherlands", "users": 178},
    {"country": "Ireland", "users": 157},
    {"country": "Colombia", "users": 102},
    {"country": "Argentina", "users": 65},
    {"country": "India", "users": 51},
]

SAMPLE_TRANSACTIONS = [
    {
        "amount": 49.0,
        "email": "test@example.com",
        "customer_name": "Test Customer",
        "date": "2024-08-18",
        "time": "02:48 PM",
        "currency": "USD",
        "status": "succeeded",
        "coupon_name": "TEST20OFF",
    },
    {
        "amount": 499.0,
        "email": "annual@example.com",
        "customer_name": "Annual Customer",
        "date": "2024-08-17",
        "time": "09:41 AM",
        "currency": "USD",
        "status": "succeeded",
        "coupon_name": None,
    },
]

SAMPLE_CUSTOMERS = [
    ("John Doe", "john@example.com"),
    ("Jane Smith", "jane@example.com"),
    ("Alice Johnson", "alice@example.com"),
    ("Bob Wilson", "bob@example.com"),
    ("Carol Brown", "carol@example.com"),
]


class SyntheticData:
    """Random stand-ins for every dashboard metric."""

    def __init__(
        self,
        tz: str = "UTC",
        rng: Optional[random.Random] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.tz = tz
        self.rng = rng or random.Random()
        self._now = now

    def _current(self) -> Optional[datetime]:
        return self._now() if self._now else None

    def _compare(self, current: tuple[int, int], previous: tuple[int, int]) -> dict:
        return comparison(self.rng.randint(*current), self.rng.randint(*previous))

    def active_users_30min(self) -> dict:
        current = self.rng.randint(10, 59)
        previous = self.rng.randint(8, 47)
        return {
            "value": current,
            "previousValue": previous,
            "percentageChange": percentage_change(current, previous),
        }

    def active_users_24h(self) -> dict:
        return self._compare((150, 349), (140, 319))

    def active_users_7days(self) -> dict:
        return self._compare((800, 1799), (750, 1649))

    def active_users_yesterday(self) -> dict:
        return self._compare((80, 229), (75, 214))

    def registered_users(self) -> dict:
        return {"value": self.rng.randint(25000, 29999)}

    def page_views_yesterday(self) -> dict:
        return {"value": self.rng.randint(2000, 4999)}

    def page_views_by_day(self, days: int = 7) -> dict:
        return {
            "data": [
                {
                    "date": label_es(day),
                    "views": self.rng.randint(2000, 9999),
                    "fullDate": day.strftime("%Y%m%d"),
                }
                for day in trailing_days(days, self.tz, self._current())
            ]
        }

    def device_breakdown(self) -> dict:
        return {"data": [dict(row) for row in DEVICE_BREAKDOWN]}

    def geographic_breakdown(self) -> dict:
        return {"data": [dict(row) for row in COUNTRY_BREAKDOWN]}

    def ctr_week(self) -> dict:
        return {"value": round(self.rng.uniform(2, 4), 2), "trend": self.rng.choice(TRENDS)}

    def roas_week(self) -> dict:
        return {"value": round(self.rng.uniform(3, 5), 1), "trend": self.rng.choice(TRENDS)}

    def ctr_daily(self, days: int = 7) -> dict:
        return {
            "data": [
                {"date": label_en(day), "ctr": round(self.rng.uniform(2, 3.5), 2)}
                for day in trailing_days(days, self.tz, self._current())
            ]
        }

    def stripe_subscriptions(self) -> dict:
        now = self._current() or datetime.now(timezone.utc)
        latest = []
        for index, (name, email) in enumerate(SAMPLE_CUSTOMERS):
            suffix = "".join(self.rng.choices(string.ascii_lowercase + string.digits, k=9))
            latest.append({
                "id": f"sub_{suffix}",
                "customer_name": name,
                "customer_email": email,
                "amount": self.rng.randint(29, 128),
                "currency": "usd",
                "status": "active",
                "created": (now - timedelta(days=index)).isoformat(),
                "product_name": "RED Atlas Professional",
            })
        return {
            "active_count": self.rng.randint(200, 699),
            "churn_rate": round(self.rng.uniform(2, 7), 2),
            "mrr": round(self.rng.uniform(5000, 15000), 2),
            "latest_subscriptions": latest,
        }

    def sample_transactions(self) -> list[dict]:
        return [dict(row) for row in SAMPLE_TRANSACTIONS]

    def jittered_series(self, base: float, spread: int, offset: float = 0, days: int = 7) -> dict:
        """A daily series around one current value, for cards that only have a total."""
        data = []
        for day in trailing_days(days, self.tz, self._current()):
            value = max(0, base + self.rng.randint(-spread, spread - 1))
            data.append({
                "date": label_es(day),
                "value": round(value + offset, 2),
                "fullDate": day.isoformat(),
            })
        return {"data": data}

    def empty_series(self) -> dict:
        return {"data": []}

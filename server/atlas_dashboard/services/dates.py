"""Timezone-aware date helpers for bucketing metrics by local day."""

from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo


MONTHS_ES = ["ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sept", "oct", "nov", "dic"]
MONTHS_EN = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def local_now(tz: str, now: Optional[datetime] = None) -> datetime:
    """Current moment in the ``tz`` zone. A naive ``now`` is taken as UTC."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(tz))


def days_before(moment: datetime, days: int, hour: int = 0) -> datetime:
    """The local day ``days`` before ``moment``, at ``hour``:00."""
    day = moment.date() - timedelta(days=days)
    return datetime(day.year, day.month, day.day, hour, tzinfo=moment.tzinfo)


def start_of_month(moment: datetime) -> datetime:
    return datetime(moment.year, moment.month, 1, tzinfo=moment.tzinfo)


def to_unix(moment: datetime) -> int:
    return int(moment.timestamp())


def local_date_time(unix_ts: int, tz: str) -> tuple[str, str]:
    """Render a unix timestamp as (``YYYY-MM-DD``, ``hh:MM AM``) in ``tz``."""
    moment = datetime.fromtimestamp(unix_ts, tz=ZoneInfo(tz))
    return moment.strftime("%Y-%m-%d"), moment.strftime("%I:%M %p")


def trailing_days(count: int, tz: str, now: Optional[datetime] = None) -> list[date]:
    """The last ``count`` local days, oldest first and ending today."""
    today = local_now(tz, now).date()
    return [today - timedelta(days=offset) for offset in range(count - 1, -1, -1)]


def label_es(day: date) -> str:
    """Short Spanish label, e.g. ``18 oct``."""
    return f"{day.day} {MONTHS_ES[day.month - 1]}"


def label_en(day: date) -> str:
    """Short English label, e.g. ``Oct 18``."""
    return f"{MONTHS_EN[day.month - 1]} {day.day}"


def parse_compact_date(value: str) -> date:
    """Parse the ``YYYYMMDD`` dates Google Analytics reports."""
    return datetime.strptime(value, "%Y%m%d").date()

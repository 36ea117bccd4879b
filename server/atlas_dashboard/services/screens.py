"""Slideshow screen order and the metrics each screen displays."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Screen:
    index: int
    name: str
    title: str
    metrics: tuple[str, ...] = field(default_factory=tuple)


SCREENS: list[Screen] = [
    Screen(0, "business-overview", "Business Overview", (
        "active-users-30min",
        "registered-users",
        "page-views-today",
        "page-views-by-hour",
        "stripe-transactions",
        "stripe-revenue",
        "stripe-subscriptions",
    )),
    Screen(1, "ads-performance", "Ads Performance", (
        "ctr-week",
        "roas-week",
        "ctr-daily-7days",
    )),
    Screen(2, "goals", "Goals", (
        "registered-users",
        "paid-users-month",
    )),
    Screen(3, "analytics-charts", "Analytics", (
        "active-users-7days",
        "registered-users-history",
        "device-breakdown",
        "geographic-breakdown",
    )),
    Screen(4, "branding", "RED Atlas"),
    Screen(5, "red-atlas", "RED Atlas Data", ("atlas-data",)),
]


def get_screen(index: int) -> Screen:
    """Screen at ``index``; raises IndexError outside the rotation."""
    if not 0 <= index < len(SCREENS):
        raise IndexError(f"No screen {index}")
    return SCREENS[index]


def next_screen(current: int) -> Screen:
    """The screen shown after ``current``, wrapping around to the first."""
    return SCREENS[(current + 1) % len(SCREENS)]

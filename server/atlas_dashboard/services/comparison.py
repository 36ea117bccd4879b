"""Period-over-period comparison helpers."""


def percentage_change(current: float, previous: float) -> float:
    """Change from ``previous`` to ``current`` in percent, one decimal."""
    if previous > 0:
        return round((current - previous) / previous * 100, 1)
    if current > 0:
        return 100.0
    return 0.0


def trend_from_change(change: float, threshold: float = 5.0) -> str:
    """Classify a percentage change as up, down or neutral."""
    if change > threshold:
        return "up"
    if change < -threshold:
        return "down"
    return "neutral"


def trend_from_ratio(current: float, previous: float, band: float = 0.05) -> str:
    """Up or down only when ``current`` leaves a ``band`` around ``previous``."""
    if current > previous * (1 + band):
        return "up"
    if current < previous * (1 - band):
        return "down"
    return "neutral"


def comparison(current: int, previous: int) -> dict:
    """Standard card payload for a value compared with the prior period."""
    change = percentage_change(current, previous)
    return {
        "value": current,
        "previousValue": previous,
        "percentageChange": change,
        "trend": trend_from_change(change),
    }

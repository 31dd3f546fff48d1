"""History period strings ('30d', '6m', '1y') to days and chart ranges."""

UNIT_DAYS = {"d": 1, "w": 7, "m": 30, "mo": 30, "y": 365}


def _split(period: str) -> tuple:
    p = period.strip().lower()
    unit = "mo" if p.endswith("mo") else p[-1:]
    count = p[: -len(unit)] if unit else ""
    if unit not in UNIT_DAYS or not count.isdigit() or int(count) <= 0:
        raise ValueError(f"Unsupported period: {period}")
    return int(count), unit


def period_days(period: str) -> int:
    """Convert a period (e.g. '5d', '2w', '6m', '1y') to calendar days."""
    count, unit = _split(period)
    return count * UNIT_DAYS[unit]


def chart_range(period: str) -> str:
    """Period in the range syntax of the chart endpoint (months are 'mo', weeks become days)."""
    count, unit = _split(period)
    if unit in ("m", "mo"):
        return f"{count}mo"
    if unit == "w":
        return f"{count * 7}d"
    return f"{count}{unit}"

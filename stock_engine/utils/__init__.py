"""Utils: period parsing."""

from stock_engine.utils.periods import period_days, chart_range

__all__ = ["period_days", "chart_range"]

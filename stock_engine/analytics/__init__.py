"""Analytics: performance metrics for backtest reports."""

from stock_engine.analytics.metrics import (
    PerformanceMetrics,
    sharpe_ratio,
    sortino_ratio,
    max_drawdown,
    win_rate,
    profit_factor,
    expectancy,
    compute_metrics,
)

__all__ = [
    "PerformanceMetrics",
    "sharpe_ratio",
    "sortino_ratio",
    "max_drawdown",
    "win_rate",
    "profit_factor",
    "expectancy",
    "compute_metrics",
]

"""Indicators: technical series, latest snapshot and regime classification."""

from stock_engine.indicators.technical import (
    MIN_HISTORY_BARS,
    INDICATOR_COLUMNS,
    IndicatorSnapshot,
    compute_indicators,
    ensure_indicators,
    indicator_series,
    latest_snapshot,
)
from stock_engine.indicators.regime import (
    RegimeThresholds,
    classify_regime,
    classify_snapshot,
    regime_series,
)

__all__ = [
    "MIN_HISTORY_BARS",
    "INDICATOR_COLUMNS",
    "IndicatorSnapshot",
    "compute_indicators",
    "ensure_indicators",
    "indicator_series",
    "latest_snapshot",
    "RegimeThresholds",
    "classify_regime",
    "classify_snapshot",
    "regime_series",
]

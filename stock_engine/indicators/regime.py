"""
Regime classifier. Priority against the latest bar:
SQUEEZE > VOLATILE > BULL/BEAR_TREND > SIDEWAYS.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List

import pandas as pd

from stock_engine.core.errors import InsufficientDataError
from stock_engine.core.types import History, Regime
from stock_engine.indicators.technical import (
    INDICATOR_COLUMNS,
    IndicatorSnapshot,
    ensure_indicators,
    latest_snapshot,
)


@dataclass(frozen=True)
class RegimeThresholds:
    squeeze_bandwidth: float = 0.05
    volatile_atr_pct: float = 0.03
    trend_adx: float = 25.0


DEFAULT_THRESHOLDS = RegimeThresholds()


def classify_snapshot(snap: IndicatorSnapshot, thresholds: RegimeThresholds = DEFAULT_THRESHOLDS) -> Regime:
    if snap.bb_middle > 0 and snap.bandwidth < thresholds.squeeze_bandwidth:
        return Regime.SQUEEZE
    if snap.atr_pct > thresholds.volatile_atr_pct:
        return Regime.VOLATILE
    if snap.adx > thresholds.trend_adx:
        if snap.bull_aligned:
            return Regime.BULL_TREND
        if snap.bear_aligned:
            return Regime.BEAR_TREND
    return Regime.SIDEWAYS


def classify_regime(
    history: History,
    thresholds: RegimeThresholds = DEFAULT_THRESHOLDS,
    min_bars: int = 50,
) -> Regime:
    """Regime of the latest bar. Insufficient history is SIDEWAYS."""
    try:
        snap = latest_snapshot(history, min_bars)
    except InsufficientDataError:
        return Regime.SIDEWAYS
    return classify_snapshot(snap, thresholds)


def regime_series(history: History, thresholds: RegimeThresholds = DEFAULT_THRESHOLDS) -> pd.Series:
    """One regime label per row. Rows still warming up are SIDEWAYS."""
    df = ensure_indicators(history)
    labels: List[Regime] = []
    for _, row in df.iterrows():
        if row[INDICATOR_COLUMNS].isna().any():
            labels.append(Regime.SIDEWAYS)
            continue
        snap = IndicatorSnapshot(
            price=float(row["close"]),
            sma20=float(row["sma20"]),
            sma50=float(row["sma50"]),
            rsi=float(row["rsi"]),
            macd=float(row["macd"]),
            macd_signal=float(row["macd_signal"]),
            macd_hist=float(row["macd_hist"]),
            prev_macd_hist=0.0,
            adx=float(row["adx"]),
            plus_di=float(row["plus_di"]),
            minus_di=float(row["minus_di"]),
            bb_upper=float(row["bb_upper"]),
            bb_middle=float(row["bb_middle"]),
            bb_lower=float(row["bb_lower"]),
            atr=float(row["atr"]),
        )
        labels.append(classify_snapshot(snap, thresholds))
    return pd.Series(labels, index=df.index, name="regime", dtype=object)

"""
Indicator engine: SMA, RSI, MACD, ADX, Bollinger Bands and ATR on an OHLC frame.
Every column is causal: the value at row i depends only on rows <= i.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict

import numpy as np
import pandas as pd

from stock_engine.core.errors import InsufficientDataError
from stock_engine.core.types import History, bars_to_frame

MIN_HISTORY_BARS = 50

SMA_FAST = 20
SMA_SLOW = 50
RSI_LEN = 14
MACD_FAST = 12
MACD_SLOW = 26
MACD_SIGNAL = 9
ADX_LEN = 14
BB_LEN = 20
BB_STD = 2.0
ATR_LEN = 14

INDICATOR_COLUMNS = [
    "sma20", "sma50", "rsi", "macd", "macd_signal", "macd_hist",
    "adx", "plus_di", "minus_di", "bb_upper", "bb_middle", "bb_lower", "atr",
]


def _wilder(series: pd.Series, length: int) -> pd.Series:
    return series.ewm(alpha=1.0 / length, min_periods=length, adjust=False).mean()


def sma(close: pd.Series, length: int) -> pd.Series:
    return close.rolling(length).mean()


def rsi(close: pd.Series, length: int = RSI_LEN) -> pd.Series:
    """Wilder RSI. No losses in the window gives 100 (or 50 on a flat series)."""
    delta = close.diff()
    up = delta.clip(lower=0)
    down = (-delta).clip(lower=0)
    avg_gain = _wilder(up, length)
    avg_loss = _wilder(down, length)
    rs = avg_gain / avg_loss.replace(0, np.nan)
    out = 100 - (100 / (1 + rs))
    out = out.mask((avg_loss == 0) & (avg_gain > 0), 100.0)
    out = out.mask((avg_loss == 0) & (avg_gain == 0), 50.0)
    return out


def macd(
    close: pd.Series,
    fast: int = MACD_FAST,
    slow: int = MACD_SLOW,
    signal: int = MACD_SIGNAL,
) -> pd.DataFrame:
    """EMA-based MACD line, signal line and histogram."""
    ema_fast = close.ewm(span=fast, adjust=False, min_periods=fast).mean()
    ema_slow = close.ewm(span=slow, adjust=False, min_periods=slow).mean()
    line = ema_fast - ema_slow
    sig = line.ewm(span=signal, adjust=False, min_periods=signal).mean()
    return pd.DataFrame({"macd": line, "macd_signal": sig, "macd_hist": line - sig})


def true_range(df: pd.DataFrame) -> pd.Series:
    high_low = df["high"] - df["low"]
    high_close = (df["high"] - df["close"].shift()).abs()
    low_close = (df["low"] - df["close"].shift()).abs()
    return pd.concat([high_low, high_close, low_close], axis=1).max(axis=1)


def atr(df: pd.DataFrame, length: int = ATR_LEN) -> pd.Series:
    return _wilder(true_range(df), length)


def adx(df: pd.DataFrame, length: int = ADX_LEN) -> pd.DataFrame:
    """Wilder ADX with +DI / -DI. Zero range bars give DI of 0, not NaN."""
    up_move = df["high"].diff()
    down_move = -df["low"].diff()
    plus_dm = pd.Series(np.where((up_move > down_move) & (up_move > 0), up_move, 0.0), index=df.index)
    minus_dm = pd.Series(np.where((down_move > up_move) & (down_move > 0), down_move, 0.0), index=df.index)
    tr_smooth = _wilder(true_range(df), length)
    safe_tr = tr_smooth.replace(0, np.nan)
    plus_di = (100 * _wilder(plus_dm, length) / safe_tr).where(tr_smooth != 0, 0.0)
    minus_di = (100 * _wilder(minus_dm, length) / safe_tr).where(tr_smooth != 0, 0.0)
    di_sum = plus_di + minus_di
    dx = (100 * (plus_di - minus_di).abs() / di_sum.replace(0, np.nan)).where(di_sum != 0, 0.0)
    return pd.DataFrame({"adx": _wilder(dx, length), "plus_di": plus_di, "minus_di": minus_di})


def bollinger(close: pd.Series, length: int = BB_LEN, num_std: float = BB_STD) -> pd.DataFrame:
    mid = close.rolling(length).mean()
    std = close.rolling(length).std(ddof=0)
    return pd.DataFrame({
        "bb_upper": mid + num_std * std,
        "bb_middle": mid,
        "bb_lower": mid - num_std * std,
    })


def compute_indicators(history: History) -> pd.DataFrame:
    """Add indicator columns to an OHLC frame. Returns a new frame."""
    df = bars_to_frame(history)
    df = df.drop(columns=[c for c in INDICATOR_COLUMNS if c in df.columns])
    close = df["close"].astype(float)
    df["sma20"] = sma(close, SMA_FAST)
    df["sma50"] = sma(close, SMA_SLOW)
    df["rsi"] = rsi(close, RSI_LEN)
    df = df.join(macd(close))
    df = df.join(adx(df, ADX_LEN))
    df = df.join(bollinger(close))
    df["atr"] = atr(df, ATR_LEN)
    return df


def ensure_indicators(history: History) -> pd.DataFrame:
    """Return history with indicator columns, computing them only when missing."""
    if isinstance(history, pd.DataFrame) and all(c in history.columns for c in INDICATOR_COLUMNS):
        return history
    return compute_indicators(history)


def indicator_series(history: History) -> Dict[str, pd.Series]:
    """Each indicator with its warm-up dropped, i.e. aligned to the tail of the input."""
    df = ensure_indicators(history)
    return {col: df[col].dropna() for col in INDICATOR_COLUMNS}


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Indicator values at the latest bar."""
    price: float
    sma20: float
    sma50: float
    rsi: float
    macd: float
    macd_signal: float
    macd_hist: float
    prev_macd_hist: float
    adx: float
    plus_di: float
    minus_di: float
    bb_upper: float
    bb_middle: float
    bb_lower: float
    atr: float

    @property
    def atr_pct(self) -> float:
        """ATR as a fraction of price. 0 when price is not positive."""
        if self.price <= 0:
            return 0.0
        return self.atr / self.price

    @property
    def bandwidth(self) -> float:
        """Bollinger bandwidth relative to SMA20. inf when SMA20 is not positive."""
        if self.bb_middle <= 0:
            return float("inf")
        return (self.bb_upper - self.bb_lower) / self.bb_middle

    @property
    def bull_aligned(self) -> bool:
        return self.price > self.sma20 > self.sma50

    @property
    def bear_aligned(self) -> bool:
        return self.price < self.sma20 < self.sma50


def latest_snapshot(history: History, min_bars: int = MIN_HISTORY_BARS) -> IndicatorSnapshot:
    """
    Snapshot of the last bar. Raises InsufficientDataError when the history is
    shorter than min_bars or any indicator is still warming up.
    """
    df = ensure_indicators(history)
    if len(df) < max(min_bars, 2):
        raise InsufficientDataError(len(df), max(min_bars, 2))
    last = df.iloc[-1]
    prev = df.iloc[-2]
    if last[INDICATOR_COLUMNS].isna().any():
        raise InsufficientDataError(len(df), max(min_bars, SMA_SLOW))
    prev_hist = prev["macd_hist"]
    return IndicatorSnapshot(
        price=float(last["close"]),
        sma20=float(last["sma20"]),
        sma50=float(last["sma50"]),
        rsi=float(last["rsi"]),
        macd=float(last["macd"]),
        macd_signal=float(last["macd_signal"]),
        macd_hist=float(last["macd_hist"]),
        prev_macd_hist=float(prev_hist) if not pd.isna(prev_hist) else 0.0,
        adx=float(last["adx"]),
        plus_di=float(last["plus_di"]),
        minus_di=float(last["minus_di"]),
        bb_upper=float(last["bb_upper"]),
        bb_middle=float(last["bb_middle"]),
        bb_lower=float(last["bb_lower"]),
        atr=float(last["atr"]),
    )

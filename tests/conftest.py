"""Shared synthetic price histories."""

from datetime import date, timedelta

import pandas as pd
import pytest

from stock_engine.core.types import Bar


def make_frame(closes, spread_up=0.5, spread_down=1.0, open_offset=-0.5, start=date(2024, 1, 1)):
    rows = []
    for i, c in enumerate(closes):
        rows.append({
            "time": (start + timedelta(days=i)).isoformat(),
            "open": c + open_offset,
            "high": c + spread_up,
            "low": c - spread_down,
            "close": float(c),
            "volume": 1000.0,
        })
    return pd.DataFrame(rows)


@pytest.fixture
def uptrend():
    """100 bars, close = 100 + i."""
    return make_frame([100 + i for i in range(100)])


@pytest.fixture
def downtrend():
    """100 bars, close = 200 - i (mirror of uptrend)."""
    return make_frame([200 - i for i in range(100)], spread_up=1.0, spread_down=0.5, open_offset=0.5)


@pytest.fixture
def flat():
    """100 identical bars."""
    return make_frame([100.0] * 100, spread_up=0.0, spread_down=0.0, open_offset=0.0)


@pytest.fixture
def short_history():
    """30 bars, below the 50-bar warm-up."""
    return make_frame([100 + i for i in range(30)])


@pytest.fixture
def uptrend_bars(uptrend):
    return [
        Bar(time=r.time, open=r.open, high=r.high, low=r.low, close=r.close, volume=r.volume)
        for r in uptrend.itertuples()
    ]


@pytest.fixture
def frame_from_closes():
    return make_frame

"""Unit tests for the specialist agents."""

import pytest

from stock_engine.agents import (
    ChairmanAgent,
    MultiTimeframeAgent,
    ReversalAgent,
    TrendAgent,
    VolatilityAgent,
    default_agents,
)
from stock_engine.agents.multi_timeframe import HORIZONS, horizon_vote
from stock_engine.core.types import Regime, Sentiment, Signal
from stock_engine.indicators.technical import IndicatorSnapshot
import stock_engine.agents.volatility as volatility


@pytest.mark.parametrize("agent", default_agents(), ids=lambda a: a.role)
def test_short_history_is_neutral(agent, short_history):
    op = agent.analyze(short_history)
    assert op.signal == Signal.HOLD
    assert op.confidence == 0
    assert op.sentiment == Sentiment.NEUTRAL
    assert op.reason == "Insufficient data"


@pytest.mark.parametrize("agent", default_agents(), ids=lambda a: a.role)
def test_confidence_in_range(agent, uptrend, downtrend, flat):
    for df in (uptrend, downtrend, flat):
        op = agent.analyze(df, Regime.SIDEWAYS)
        assert 0 <= op.confidence <= 100


def test_chairman_uptrend_buy(uptrend):
    op = ChairmanAgent().analyze(uptrend, Regime.BULL_TREND)
    assert op.signal == Signal.BUY
    assert op.sentiment == Sentiment.BULLISH
    assert op.confidence == 98
    assert "Perfect Bull Alignment" in op.reason


def test_chairman_downtrend_sell(downtrend):
    op = ChairmanAgent().analyze(downtrend, Regime.BEAR_TREND)
    assert op.signal == Signal.SELL
    assert op.sentiment == Sentiment.BEARISH


def test_chairman_tags_squeeze(flat):
    op = ChairmanAgent().analyze(flat, Regime.SQUEEZE)
    assert "Squeeze Detected" in op.reason
    assert op.signal == Signal.HOLD


def test_trend_agent(uptrend, downtrend):
    up = TrendAgent().analyze(uptrend)
    down = TrendAgent().analyze(downtrend)
    assert (up.signal, up.confidence) == (Signal.BUY, 80)
    assert (down.signal, down.confidence) == (Signal.SELL, 80)


def test_reversal_damped_in_trend(uptrend):
    damped = ReversalAgent().analyze(uptrend, Regime.BULL_TREND)
    raw = ReversalAgent().analyze(uptrend, Regime.SIDEWAYS)
    assert damped.signal == Signal.HOLD
    assert damped.confidence == 25
    assert raw.signal == Signal.SELL
    assert raw.confidence == 50


def test_volatility_squeeze_waits(flat):
    op = VolatilityAgent().analyze(flat, Regime.SQUEEZE)
    assert op.signal == Signal.HOLD
    assert op.confidence == 50


def test_volatility_low_atr_holds(uptrend):
    op = VolatilityAgent().analyze(uptrend, Regime.BULL_TREND)
    assert op.signal == Signal.HOLD
    assert op.reason == "Low Volatility"


def test_volatility_breakout(monkeypatch, uptrend):
    snap = IndicatorSnapshot(
        price=110.0, sma20=100.0, sma50=95.0, rsi=65.0, macd=1.0, macd_signal=0.5, macd_hist=0.5,
        prev_macd_hist=0.3, adx=30.0, plus_di=30.0, minus_di=10.0,
        bb_upper=108.0, bb_middle=100.0, bb_lower=92.0, atr=3.3,
    )
    monkeypatch.setattr(volatility, "latest_snapshot", lambda history, min_bars=50: snap)
    op = VolatilityAgent().analyze(uptrend, Regime.VOLATILE)
    assert op.signal == Signal.BUY
    assert op.confidence == 60
    assert "Closing above upper band" in op.reason


def test_horizon_vote_insufficient_is_hold(short_history):
    long_h = HORIZONS[-1]
    assert horizon_vote(short_history["close"], long_h) == (Signal.HOLD, 0.0)


def test_multi_timeframe_unanimous(uptrend, downtrend):
    up = MultiTimeframeAgent().analyze(uptrend)
    down = MultiTimeframeAgent().analyze(downtrend)
    assert (up.signal, up.confidence) == (Signal.BUY, 80)
    assert (down.signal, down.confidence) == (Signal.SELL, 80)


def test_multi_timeframe_conflict_holds(frame_from_closes):
    # Rally then a 5-bar pullback: short horizon SELL, medium HOLD, long BUY
    closes = [100 + i for i in range(100)] + [196, 193, 190, 187, 184]
    df = frame_from_closes(closes)
    votes = [horizon_vote(df["close"], h)[0] for h in HORIZONS]
    assert votes == [Signal.SELL, Signal.HOLD, Signal.BUY]
    op = MultiTimeframeAgent().analyze(df)
    assert op.signal == Signal.HOLD
    assert op.confidence == 0
    assert op.reason.startswith("Timeframes disagree")


def test_agents_do_not_mutate_history(uptrend):
    before = uptrend.copy()
    for agent in default_agents():
        agent.analyze(uptrend)
    assert uptrend.equals(before)

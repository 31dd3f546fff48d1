"""Breakout hunter: waits out squeezes, follows expanding volatility in trends."""

from __future__ import annotations
from typing import List, Optional

from stock_engine.agents.base import Agent
from stock_engine.core.errors import InsufficientDataError
from stock_engine.core.types import AgentOpinion, History, Regime, Sentiment, Signal
from stock_engine.indicators.technical import IndicatorSnapshot, latest_snapshot

BREAKOUT_ATR_PCT = 0.02


def _breakout_direction(snap: IndicatorSnapshot, regime: Optional[Regime]) -> int:
    if regime == Regime.BULL_TREND:
        return 1
    if regime == Regime.BEAR_TREND:
        return -1
    # VOLATILE outranks trend labels, so read direction from MA alignment
    if regime == Regime.VOLATILE:
        if snap.bull_aligned:
            return 1
        if snap.bear_aligned:
            return -1
    return 0


class VolatilityAgent(Agent):
    name = "Hunter (Volatility)"
    role = "VOLATILE"
    threshold = 40.0

    def analyze(self, history: History, regime: Optional[Regime] = None) -> AgentOpinion:
        try:
            snap = latest_snapshot(history, self.min_bars)
        except InsufficientDataError:
            return self.neutral("Insufficient data")

        if regime == Regime.SQUEEZE:
            return self.opinion(Signal.HOLD, 50, "Squeeze Active - Waiting for breakout", Sentiment.NEUTRAL)

        direction = _breakout_direction(snap, regime)
        if snap.atr_pct <= BREAKOUT_ATR_PCT or direction == 0:
            return self.opinion(Signal.HOLD, 0, "Low Volatility", Sentiment.NEUTRAL)

        reasons: List[str] = []
        score = 40.0 * direction
        reasons.append("High Volatility Breakout (Up)" if direction > 0 else "High Volatility Breakout (Down)")
        if direction > 0 and snap.price > snap.bb_upper:
            score += 20
            reasons.append("Closing above upper band")
        elif direction < 0 and snap.price < snap.bb_lower:
            score -= 20
            reasons.append("Closing below lower band")

        return self.opinion(
            self.score_to_signal(score, self.threshold),
            min(abs(score), 100),
            ", ".join(reasons),
            self.score_sentiment(score),
        )

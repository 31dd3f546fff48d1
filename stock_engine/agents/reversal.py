"""Contrarian: RSI extremes and Bollinger band excursions, damped in trends."""

from __future__ import annotations
from typing import List, Optional

from stock_engine.agents.base import Agent
from stock_engine.core.errors import InsufficientDataError
from stock_engine.core.types import AgentOpinion, History, Regime
from stock_engine.indicators.technical import latest_snapshot

TREND_REGIMES = (Regime.BULL_TREND, Regime.BEAR_TREND)


class ReversalAgent(Agent):
    name = "Contra (Reversal)"
    role = "REVERSAL"
    threshold = 40.0

    def analyze(self, history: History, regime: Optional[Regime] = None) -> AgentOpinion:
        try:
            snap = latest_snapshot(history, self.min_bars)
        except InsufficientDataError:
            return self.neutral("Insufficient data")

        score = 0.0
        reasons: List[str] = []
        if snap.rsi < 30:
            score += 50
            reasons.append(f"RSI Oversold ({round(snap.rsi)})")
        elif snap.rsi > 70:
            score -= 50
            reasons.append(f"RSI Overbought ({round(snap.rsi)})")

        if snap.price < snap.bb_lower:
            score += 30
            reasons.append("Below Lower Band")
        elif snap.price > snap.bb_upper:
            score -= 30
            reasons.append("Above Upper Band")

        if regime in TREND_REGIMES and score != 0:
            score *= 0.5
            reasons.append("Damped by trend regime")

        return self.opinion(
            self.score_to_signal(score, self.threshold),
            min(abs(score), 100),
            ", ".join(reasons) or "No extremes detected",
            self.score_sentiment(score),
        )

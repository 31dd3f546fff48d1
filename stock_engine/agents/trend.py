"""Trend follower: moving-average order, MACD and ADX strength."""

from __future__ import annotations
from typing import List, Optional

from stock_engine.agents.base import Agent
from stock_engine.core.errors import InsufficientDataError
from stock_engine.core.types import AgentOpinion, History, Regime
from stock_engine.indicators.technical import latest_snapshot


class TrendAgent(Agent):
    name = "Trend Follower"
    role = "TREND"
    threshold = 30.0

    def analyze(self, history: History, regime: Optional[Regime] = None) -> AgentOpinion:
        try:
            snap = latest_snapshot(history, self.min_bars)
        except InsufficientDataError:
            return self.neutral("Insufficient data")

        score = 0.0
        reasons: List[str] = []
        if snap.bull_aligned:
            score += 40
            reasons.append("Perfect Order (Price > SMA20 > SMA50)")
        elif snap.bear_aligned:
            score -= 40
            reasons.append("Dead Cross Order")

        if snap.macd > snap.macd_signal:
            score += 20
            if snap.macd_hist > 0 and snap.macd_hist > snap.prev_macd_hist:
                score += 10
                reasons.append("MACD Momentum Rising")
        elif snap.macd < snap.macd_signal:
            score -= 20
            if snap.macd_hist < 0 and snap.macd_hist < snap.prev_macd_hist:
                score -= 10
                reasons.append("MACD Momentum Falling")

        if snap.adx > 25:
            if snap.bull_aligned:
                score += 20
                reasons.append(f"Strong Trend (ADX {round(snap.adx)})")
            elif snap.bear_aligned:
                score -= 20
                reasons.append(f"Strong Trend (ADX {round(snap.adx)})")

        return self.opinion(
            self.score_to_signal(score, self.threshold),
            min(abs(score), 100),
            ", ".join(reasons) or "No strong trend",
            self.score_sentiment(score),
        )

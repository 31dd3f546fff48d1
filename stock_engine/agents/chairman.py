"""
Chairman: the most heavily weighted judge. Combines trend, oscillator, MACD and
band terms with ADX-coupled strengths.
"""

from __future__ import annotations
import logging
from typing import List, Optional

from stock_engine.agents.base import Agent, clamp
from stock_engine.core.errors import InsufficientDataError
from stock_engine.core.types import AgentOpinion, History, Regime
from stock_engine.indicators.technical import latest_snapshot

logger = logging.getLogger("stock_engine.agents.chairman")

TRENDING_ADX = 25.0
BAND_WALK_ADX = 30.0
VOLATILE_ATR_PCT = 0.03
SIGNAL_THRESHOLD = 15.0
MAX_CONFIDENCE = 98


class ChairmanAgent(Agent):
    """
    trend_strength = clamp(ADX/20, 0.5, 2) scales trend and MACD reads.
    oscillator_strength = clamp(25/ADX, 0.5, 2) scales RSI and band-reversal
    reads, so oscillators count more in ranges and less in hard trends.
    """

    name = "Alpha (Chairman)"
    role = "CHAIRMAN"

    def analyze(self, history: History, regime: Optional[Regime] = None) -> AgentOpinion:
        try:
            snap = latest_snapshot(history, self.min_bars)
        except InsufficientDataError:
            return self.neutral("Insufficient data")

        ts = clamp(snap.adx / 20.0, 0.5, 2.0)
        osc = clamp(25.0 / snap.adx, 0.5, 2.0) if snap.adx > 0 else 2.0
        score = 0.0
        reasons: List[str] = []

        if snap.bull_aligned:
            score += 15 * ts
            reasons.append("Perfect Bull Alignment")
        elif snap.bear_aligned:
            score -= 15 * ts
            reasons.append("Bear Trend Alignment")

        if snap.rsi < 30:
            score += 25 * osc
            reasons.append(f"Oversold (RSI {round(snap.rsi)})")
        elif snap.rsi > 70:
            score -= 25 * osc
            reasons.append(f"Overbought (RSI {round(snap.rsi)})")

        growing = abs(snap.macd_hist) > abs(snap.prev_macd_hist)
        if snap.macd > snap.macd_signal:
            score += 15 * ts
            if snap.macd_hist > 0 and growing:
                score += 5 * ts
                reasons.append("MACD Momentum Rising")
        elif snap.macd < snap.macd_signal:
            score -= 15 * ts
            if snap.macd_hist < 0 and growing:
                score -= 5 * ts
                reasons.append("MACD Momentum Falling")

        if snap.price > snap.bb_upper:
            if snap.adx > BAND_WALK_ADX:
                score += 10 * ts
                reasons.append("Band Walk (Upper)")
            else:
                score -= 10 * osc
                reasons.append("Above Upper Band (Reversal Risk)")
        elif snap.price < snap.bb_lower:
            if snap.adx > BAND_WALK_ADX:
                score -= 10 * ts
                reasons.append("Band Walk (Lower)")
            else:
                score += 10 * osc
                reasons.append("Below Lower Band (Rebound Setup)")

        trending = snap.adx > TRENDING_ADX
        if regime == Regime.SQUEEZE:
            reasons.append("Squeeze Detected (Await Breakout)")
        elif regime == Regime.VOLATILE:
            reasons.append("High Volatility (Caution)")

        confidence = (abs(score) / 35.0 * 100.0) * (1.3 if trending else 0.85)
        if snap.atr_pct > VOLATILE_ATR_PCT:
            confidence *= 0.8
        confidence = min(round(confidence + 20), MAX_CONFIDENCE)
        logger.debug("chairman score=%.2f adx=%.1f rsi=%.1f conf=%d", score, snap.adx, snap.rsi, confidence)

        return self.opinion(
            self.score_to_signal(score, SIGNAL_THRESHOLD),
            confidence,
            ", ".join(reasons) or "No clear signal",
            self.score_sentiment(score),
        )

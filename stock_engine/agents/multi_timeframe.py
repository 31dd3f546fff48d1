"""
Multi-timeframe judge: short, medium and long horizon reads must agree.
At least two horizons on the same side decide; anything else is HOLD.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Tuple

import pandas as pd

from stock_engine.agents.base import Agent
from stock_engine.core.types import AgentOpinion, History, Regime, Sentiment, Signal, bars_to_frame


@dataclass(frozen=True)
class Horizon:
    name: str
    sma_len: int
    slope_lag: int


HORIZONS = (
    Horizon("short", 10, 5),
    Horizon("medium", 20, 5),
    Horizon("long", 50, 10),
)

HORIZON_THRESHOLD = 50
UNANIMOUS_BONUS = 10


def horizon_vote(close: pd.Series, horizon: Horizon) -> Tuple[Signal, float]:
    """Price vs SMA (+/-40) and SMA slope (+/-30). Too little data votes HOLD."""
    if len(close) < horizon.sma_len + horizon.slope_lag:
        return Signal.HOLD, 0.0
    sma = close.rolling(horizon.sma_len).mean()
    price = float(close.iloc[-1])
    now = float(sma.iloc[-1])
    then = float(sma.iloc[-1 - horizon.slope_lag])
    score = 0.0
    if price > now:
        score += 40
    elif price < now:
        score -= 40
    if now > then:
        score += 30
    elif now < then:
        score -= 30
    if score >= HORIZON_THRESHOLD:
        return Signal.BUY, abs(score)
    if score <= -HORIZON_THRESHOLD:
        return Signal.SELL, abs(score)
    return Signal.HOLD, abs(score)


class MultiTimeframeAgent(Agent):
    name = "Multi-Timeframe Analyzer"
    role = "MULTI_TIMEFRAME"

    def analyze(self, history: History, regime: Optional[Regime] = None) -> AgentOpinion:
        df = history if isinstance(history, pd.DataFrame) else bars_to_frame(history)
        if len(df) < self.min_bars:
            return self.neutral("Insufficient data")
        close = df["close"].astype(float)

        votes: List[Tuple[Horizon, Signal, float]] = [(h, *horizon_vote(close, h)) for h in HORIZONS]
        summary = ", ".join(f"{h.name}={sig.value}" for h, sig, _ in votes)
        buys = [conf for _, sig, conf in votes if sig == Signal.BUY]
        sells = [conf for _, sig, conf in votes if sig == Signal.SELL]

        if len(buys) >= 2 and len(buys) > len(sells):
            agreeing, signal, sentiment = buys, Signal.BUY, Sentiment.BULLISH
        elif len(sells) >= 2 and len(sells) > len(buys):
            agreeing, signal, sentiment = sells, Signal.SELL, Sentiment.BEARISH
        else:
            return self.opinion(Signal.HOLD, 0, f"Timeframes disagree ({summary})", Sentiment.NEUTRAL)

        confidence = sum(agreeing) / len(agreeing)
        if len(agreeing) == len(HORIZONS):
            confidence += UNANIMOUS_BONUS
        return self.opinion(signal, min(confidence, 100), f"Timeframes agree ({summary})", sentiment)

"""Abstract agent: a pure judge from price history (+ optional regime) to an opinion."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional

from stock_engine.core.types import AgentOpinion, History, Regime, Sentiment, Signal


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class Agent(ABC):
    """
    Agents share one contract so they are swappable and testable in isolation.
    No agent reads another agent's output.
    """

    name: str = "agent"
    role: str = "BASE"
    min_bars: int = 50

    @abstractmethod
    def analyze(self, history: History, regime: Optional[Regime] = None) -> AgentOpinion:
        """Return this agent's opinion on the latest bar of history."""
        pass

    def neutral(self, reason: str) -> AgentOpinion:
        return AgentOpinion(
            agent_name=self.name,
            role=self.role,
            signal=Signal.HOLD,
            confidence=0.0,
            sentiment=Sentiment.NEUTRAL,
            reason=reason,
        )

    def opinion(self, signal: Signal, confidence: float, reason: str, sentiment: Sentiment) -> AgentOpinion:
        return AgentOpinion(
            agent_name=self.name,
            role=self.role,
            signal=signal,
            confidence=clamp(float(confidence), 0.0, 100.0),
            sentiment=sentiment,
            reason=reason,
        )

    @staticmethod
    def score_to_signal(score: float, threshold: float) -> Signal:
        if score >= threshold:
            return Signal.BUY
        if score <= -threshold:
            return Signal.SELL
        return Signal.HOLD

    @staticmethod
    def score_sentiment(score: float) -> Sentiment:
        return Sentiment.BULLISH if score >= 0 else Sentiment.BEARISH

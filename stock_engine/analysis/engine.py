"""
Signal engine: indicators -> regime -> specialist agents -> weighted consensus.
Pure and synchronous; the input history is never mutated.
"""

from __future__ import annotations
import logging
from typing import List, Optional, Sequence

from stock_engine.agents import Agent, ConsensusAggregator, default_agents
from stock_engine.core.types import ConsensusSignal, History, Regime, Sentiment, Signal, bars_to_frame
from stock_engine.indicators.regime import DEFAULT_THRESHOLDS, RegimeThresholds, classify_regime
from stock_engine.indicators.technical import MIN_HISTORY_BARS, ensure_indicators

logger = logging.getLogger("stock_engine.analysis")


def insufficient_signal(price: float = 0.0) -> ConsensusSignal:
    return ConsensusSignal(
        sentiment=Sentiment.NEUTRAL,
        confidence=0.0,
        regime=Regime.SIDEWAYS,
        signals=["Insufficient data"],
        signal=Signal.HOLD,
        score=0.0,
        price=price,
    )


class SignalEngine:
    """Runs every agent against one history and aggregates their opinions."""

    def __init__(
        self,
        agents: Optional[Sequence[Agent]] = None,
        aggregator: Optional[ConsensusAggregator] = None,
        thresholds: RegimeThresholds = DEFAULT_THRESHOLDS,
        min_bars: int = MIN_HISTORY_BARS,
    ):
        self.agents: List[Agent] = list(agents) if agents is not None else default_agents()
        self.aggregator = aggregator or ConsensusAggregator()
        self.thresholds = thresholds
        self.min_bars = min_bars

    def analyze(self, history: History) -> ConsensusSignal:
        """
        Consensus for the latest bar. Fewer than min_bars rows returns a
        NEUTRAL / 0 / SIDEWAYS / HOLD signal instead of raising.
        """
        df = bars_to_frame(history)
        price = float(df["close"].iloc[-1]) if len(df) else 0.0
        if len(df) < self.min_bars:
            logger.debug("analyze: %d bars < %d, neutral", len(df), self.min_bars)
            return insufficient_signal(price)

        df = ensure_indicators(df)
        regime = classify_regime(df, self.thresholds, self.min_bars)
        opinions = [agent.analyze(df, regime) for agent in self.agents]
        return self.aggregator.aggregate(opinions, regime, price)


def analyze(history: History) -> ConsensusSignal:
    """Consensus signal with the default agents and weights."""
    return SignalEngine().analyze(history)

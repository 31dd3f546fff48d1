"""
Consensus aggregator: weighted vote of agent opinions into one signed score.
HOLD opinions contribute direction 0 but still count toward the total weight.
"""

from __future__ import annotations
import logging
from typing import Dict, List, Mapping, Optional, Sequence

from stock_engine.agents.weighting import DEFAULT_WEIGHTS, DynamicWeighting
from stock_engine.core.types import AgentOpinion, ConsensusSignal, Regime, Sentiment, Signal

logger = logging.getLogger("stock_engine.agents.consensus")

DIRECTION = {Signal.BUY: 1, Signal.SELL: -1, Signal.HOLD: 0}


class ConsensusAggregator:
    """score = sum(direction * confidence * weight) / sum(weight), in [-100, 100]."""

    def __init__(
        self,
        weights: Optional[Mapping[str, float]] = None,
        hold_band: float = 10.0,
        weighting: Optional[DynamicWeighting] = None,
    ):
        self.weights: Dict[str, float] = dict(weights or DEFAULT_WEIGHTS)
        self.hold_band = hold_band
        self.weighting = weighting

    def weight_for(self, role: str) -> float:
        if self.weighting is not None:
            return self.weighting.weight(role)
        return self.weights.get(role, 1.0)

    def score(self, opinions: Sequence[AgentOpinion]) -> float:
        total = 0.0
        total_weight = 0.0
        for op in opinions:
            w = self.weight_for(op.role)
            total += DIRECTION[op.signal] * op.confidence * w
            total_weight += w
        if total_weight <= 0:
            return 0.0
        return max(-100.0, min(100.0, total / total_weight))

    def aggregate(
        self,
        opinions: Sequence[AgentOpinion],
        regime: Regime,
        price: float = 0.0,
    ) -> ConsensusSignal:
        score = self.score(opinions)
        if score > 0:
            sentiment = Sentiment.BULLISH
        elif score < 0:
            sentiment = Sentiment.BEARISH
        else:
            sentiment = Sentiment.NEUTRAL
        if abs(score) >= self.hold_band:
            signal = Signal.BUY if score > 0 else Signal.SELL
        else:
            signal = Signal.HOLD

        tags: List[str] = [f"Regime: {regime.value}"]
        for op in opinions:
            if op.signal != Signal.HOLD:
                tags.append(f"{op.agent_name}: {op.signal.value} ({round(op.confidence)}%) - {op.reason}")

        logger.debug("consensus score=%.2f sentiment=%s regime=%s", score, sentiment.value, regime.value)
        return ConsensusSignal(
            sentiment=sentiment,
            confidence=float(min(round(abs(score)), 100)),
            regime=regime,
            signals=tags,
            signal=signal,
            score=score,
            price=price,
            opinions=list(opinions),
        )

"""
Adaptive agent weights from prediction accuracy. Roles with fewer than
min_records graded predictions keep their base weight.
"""

from __future__ import annotations
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Deque, Dict, Mapping, Optional

import numpy as np

from stock_engine.core.types import AgentOpinion, Signal

DEFAULT_WEIGHTS: Dict[str, float] = {
    "CHAIRMAN": 2.0,
    "VOLATILE": 1.5,
    "TREND": 1.0,
    "REVERSAL": 1.0,
    "MULTI_TIMEFRAME": 1.0,
}


@dataclass
class AgentPerformance:
    total: int = 0
    correct: int = 0
    recent_accuracy: Optional[float] = None
    volatility: float = 0.0

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else 0.0


def is_prediction_correct(opinion: AgentOpinion, actual: str) -> bool:
    """actual is "UP", "DOWN" or "NEUTRAL"."""
    if opinion.signal == Signal.BUY:
        return actual == "UP"
    if opinion.signal == Signal.SELL:
        return actual == "DOWN"
    return actual == "NEUTRAL"


class DynamicWeighting:
    """weight = base * (accuracy*0.5 + consistency*0.3 + recent*0.2), floored at 0.1."""

    def __init__(
        self,
        base_weights: Optional[Mapping[str, float]] = None,
        accuracy_weight: float = 0.5,
        consistency_weight: float = 0.3,
        recency_weight: float = 0.2,
        min_records: int = 10,
        history_size: int = 100,
    ):
        self.base_weights = dict(base_weights or DEFAULT_WEIGHTS)
        self.accuracy_weight = accuracy_weight
        self.consistency_weight = consistency_weight
        self.recency_weight = recency_weight
        self.min_records = min_records
        self._perf: Dict[str, AgentPerformance] = defaultdict(AgentPerformance)
        self._outcomes: Dict[str, Deque[bool]] = defaultdict(lambda: deque(maxlen=history_size))
        self._accuracy_history: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=history_size))

    def record_prediction(self, opinion: AgentOpinion, actual: str) -> None:
        perf = self._perf[opinion.role]
        correct = is_prediction_correct(opinion, actual)
        perf.total += 1
        if correct:
            perf.correct += 1
        self._outcomes[opinion.role].append(correct)
        self._accuracy_history[opinion.role].append(perf.accuracy)
        self._update_consistency(opinion.role)

    def _update_consistency(self, role: str) -> None:
        perf = self._perf[role]
        recent = list(self._outcomes[role])[-20:]
        if len(recent) >= self.min_records:
            perf.recent_accuracy = sum(recent) / len(recent)
        acc_hist = list(self._accuracy_history[role])[-10:]
        if len(acc_hist) >= 2:
            perf.volatility = min(float(np.var(acc_hist)), 1.0)

    def performance(self, role: str) -> AgentPerformance:
        return self._perf[role]

    def weight(self, role: str) -> float:
        base = self.base_weights.get(role, 1.0)
        perf = self._perf.get(role)
        if perf is None or perf.total < self.min_records:
            return base
        recent = perf.recent_accuracy if perf.recent_accuracy is not None else perf.accuracy
        dynamic = base * (
            perf.accuracy * self.accuracy_weight
            + (1 - perf.volatility) * self.consistency_weight
            + recent * self.recency_weight
        )
        return max(0.1, dynamic)

    def weights(self) -> Dict[str, float]:
        roles = set(self.base_weights) | set(self._perf)
        return {role: self.weight(role) for role in roles}

    def reset(self) -> None:
        self._perf.clear()
        self._outcomes.clear()
        self._accuracy_history.clear()

"""Agents: specialist judges and the weighted consensus over their opinions."""

from stock_engine.agents.base import Agent
from stock_engine.agents.chairman import ChairmanAgent
from stock_engine.agents.trend import TrendAgent
from stock_engine.agents.reversal import ReversalAgent
from stock_engine.agents.volatility import VolatilityAgent
from stock_engine.agents.multi_timeframe import MultiTimeframeAgent
from stock_engine.agents.consensus import ConsensusAggregator
from stock_engine.agents.weighting import DEFAULT_WEIGHTS, DynamicWeighting


def default_agents():
    return [ChairmanAgent(), TrendAgent(), ReversalAgent(), VolatilityAgent(), MultiTimeframeAgent()]


__all__ = [
    "Agent",
    "ChairmanAgent",
    "TrendAgent",
    "ReversalAgent",
    "VolatilityAgent",
    "MultiTimeframeAgent",
    "ConsensusAggregator",
    "DynamicWeighting",
    "DEFAULT_WEIGHTS",
    "default_agents",
]

"""Core: config, types, errors, logging."""

from stock_engine.core.config import load_config, Config
from stock_engine.core.errors import (
    StockEngineError,
    InsufficientDataError,
    RiskRejected,
    ProviderError,
    InvariantViolation,
)
from stock_engine.core.types import (
    Bar,
    Side,
    Signal,
    Sentiment,
    Regime,
    PositionSide,
    OrderType,
    AgentOpinion,
    ConsensusSignal,
    TradeSetup,
    RiskParameters,
    Position,
    Trade,
    Portfolio,
    TradeRequest,
    ExecutionResult,
    ClosedTrade,
    BacktestReport,
    bars_to_frame,
)
from stock_engine.core.logger import setup_logging

__all__ = [
    "load_config",
    "Config",
    "StockEngineError",
    "InsufficientDataError",
    "RiskRejected",
    "ProviderError",
    "InvariantViolation",
    "Bar",
    "Side",
    "Signal",
    "Sentiment",
    "Regime",
    "PositionSide",
    "OrderType",
    "AgentOpinion",
    "ConsensusSignal",
    "TradeSetup",
    "RiskParameters",
    "Position",
    "Trade",
    "Portfolio",
    "TradeRequest",
    "ExecutionResult",
    "ClosedTrade",
    "BacktestReport",
    "bars_to_frame",
    "setup_logging",
]

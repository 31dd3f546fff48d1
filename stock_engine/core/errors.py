"""
Engine error kinds. Insufficient data degrades to neutral results; risk
rejections are structured failures; provider and invariant errors propagate.
"""

from __future__ import annotations


class StockEngineError(Exception):
    """Base class for all engine errors."""


class InsufficientDataError(StockEngineError):
    """History shorter than the indicator warm-up window."""

    def __init__(self, have: int, need: int):
        super().__init__(f"insufficient data: {have} bars < {need} required")
        self.have = have
        self.need = need


class RiskRejected(StockEngineError):
    """Order refused by the risk gate. The ledger is left unchanged."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ProviderError(StockEngineError):
    """Price history or quote fetch failed."""

    def __init__(self, message: str, symbol: str = ""):
        super().__init__(message)
        self.symbol = symbol


class InvariantViolation(StockEngineError):
    """Programming-contract error, e.g. a second position on one symbol."""

"""Risk: position sizing, limit pricing and the ledger's risk gate."""

from stock_engine.risk.sizing import calculate_position_size, calculate_limit_price
from stock_engine.risk.gate import RiskGate, RiskResult

__all__ = ["calculate_position_size", "calculate_limit_price", "RiskGate", "RiskResult"]

"""Backtesting: bar-by-bar simulator and threshold optimizer."""

from stock_engine.backtesting.engine import BacktestConfig, BacktestEngine, run_backtest
from stock_engine.backtesting.optimizer import OptimizationResult, find_optimal_threshold

__all__ = ["BacktestConfig", "BacktestEngine", "run_backtest", "OptimizationResult", "find_optimal_threshold"]

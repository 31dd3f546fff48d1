"""Analysis: the signal engine and its executor offload boundary."""

from stock_engine.analysis.engine import SignalEngine, analyze, insufficient_signal
from stock_engine.analysis.worker import AnalysisWorker, analyze_async, backtest_async

__all__ = [
    "SignalEngine",
    "analyze",
    "insufficient_signal",
    "AnalysisWorker",
    "analyze_async",
    "backtest_async",
]

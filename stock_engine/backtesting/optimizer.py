"""
Threshold optimizer: grid-search buy_threshold over one signal path.
The consensus path does not depend on the threshold, so it is computed once.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Tuple

from stock_engine.backtesting.engine import BacktestConfig, BacktestEngine, empty_report
from stock_engine.core.types import BacktestReport, History
from stock_engine.indicators.technical import ensure_indicators

logger = logging.getLogger("stock_engine.backtest.optimizer")

DEFAULT_THRESHOLDS = tuple(range(60, 91, 5))


@dataclass
class OptimizationResult:
    """Best threshold and its report, plus (threshold, report) for every candidate."""
    best_threshold: float
    best_report: BacktestReport
    results: List[Tuple[float, BacktestReport]] = field(default_factory=list)


def _better(candidate: BacktestReport, best: BacktestReport) -> bool:
    """Higher profit wins; equal profit prefers fewer trades."""
    if candidate.profit != best.profit:
        return candidate.profit > best.profit
    return candidate.trade_count < best.trade_count


def find_optimal_threshold(
    symbol: str,
    history: History,
    initial_balance: float = 1000000.0,
    base_config: Optional[BacktestConfig] = None,
    thresholds: Iterable[float] = DEFAULT_THRESHOLDS,
) -> OptimizationResult:
    base = base_config or BacktestConfig()
    candidates = list(thresholds)
    if not candidates:
        raise ValueError("thresholds must not be empty")

    df = ensure_indicators(history)
    if len(df) < base.warmup_bars + 1:
        report = empty_report(symbol, initial_balance, len(df))
        return OptimizationResult(candidates[0], report, [(t, report) for t in candidates])

    signals = BacktestEngine(base).signal_path(df)
    results: List[Tuple[float, BacktestReport]] = []
    best_threshold, best_report = None, None
    for threshold in candidates:
        engine = BacktestEngine(replace(base, buy_threshold=threshold))
        report = engine.simulate(symbol, df, signals, initial_balance)
        results.append((threshold, report))
        if best_report is None or _better(report, best_report):
            best_threshold, best_report = threshold, report

    logger.info(
        "Optimal threshold for %s: %s (profit=%.2f, trades=%d)",
        symbol, best_threshold, best_report.profit, best_report.trade_count,
    )
    return OptimizationResult(best_threshold, best_report, results)

"""
Offload boundary for analysis and backtests. Both are pure functions of their
inputs, so they run in a process pool by default; a thread pool is selectable.
"""

from __future__ import annotations
import asyncio
import logging
from concurrent.futures import Executor, Future, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Optional, TYPE_CHECKING

from stock_engine.analysis.engine import analyze
from stock_engine.core.types import BacktestReport, ConsensusSignal, History

if TYPE_CHECKING:
    from stock_engine.backtesting.engine import BacktestConfig

logger = logging.getLogger("stock_engine.analysis.worker")


class AnalysisWorker:
    """Submits analyze / run_backtest to an executor and returns Futures."""

    def __init__(self, max_workers: Optional[int] = None, use_threads: bool = False):
        self.use_threads = use_threads
        if use_threads:
            self._executor: Executor = ThreadPoolExecutor(max_workers=max_workers)
        else:
            self._executor = ProcessPoolExecutor(max_workers=max_workers)

    @property
    def executor(self) -> Executor:
        return self._executor

    def submit_analysis(self, history: History) -> "Future[ConsensusSignal]":
        return self._executor.submit(analyze, history)

    def submit_backtest(
        self,
        symbol: str,
        history: History,
        initial_balance: float,
        config: Optional[BacktestConfig] = None,
    ) -> "Future[BacktestReport]":
        from stock_engine.backtesting.engine import run_backtest

        logger.debug("submitting backtest for %s", symbol)
        return self._executor.submit(run_backtest, symbol, history, initial_balance, config)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "AnalysisWorker":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()


async def analyze_async(history: History, executor: Optional[Executor] = None) -> ConsensusSignal:
    """Run analyze() off the event loop. executor=None uses the loop's default pool."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(executor, analyze, history)


async def backtest_async(
    symbol: str,
    history: History,
    initial_balance: float,
    config: Optional[BacktestConfig] = None,
    executor: Optional[Executor] = None,
) -> BacktestReport:
    from stock_engine.backtesting.engine import run_backtest

    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(executor, run_backtest, symbol, history, initial_balance, config)

"""
Performance metrics: Sharpe, Sortino, max drawdown, win rate, profit factor, expectancy.
Assumes period returns (e.g. daily or per-trade).
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from stock_engine.core.types import BacktestReport


@dataclass
class PerformanceMetrics:
    """Aggregate performance metrics of a backtest report."""
    total_return_pct: float
    sharpe_ratio: float
    sortino_ratio: float
    max_drawdown: float
    win_rate: float
    profit_factor: float
    expectancy: float
    total_trades: int
    winning_trades: int
    losing_trades: int
    avg_win: float
    avg_loss: float


def sharpe_ratio(returns: Sequence[float], risk_free_rate: float = 0.0, periods_per_year: float = 252.0) -> float:
    """Annualized Sharpe. returns = list of period returns."""
    if len(returns) == 0:
        return 0.0
    arr = np.asarray(returns, dtype=float)
    excess = arr - risk_free_rate / periods_per_year
    if excess.std() <= 1e-12:
        return 0.0
    return float(np.sqrt(periods_per_year) * excess.mean() / excess.std())


def sortino_ratio(returns: Sequence[float], risk_free_rate: float = 0.0, periods_per_year: float = 252.0) -> float:
    """Annualized Sortino (downside deviation)."""
    if len(returns) == 0:
        return 0.0
    arr = np.asarray(returns, dtype=float)
    excess = arr - risk_free_rate / periods_per_year
    downside = arr[arr < 0]
    if len(downside) == 0 or downside.std() <= 1e-12:
        return sharpe_ratio(returns, risk_free_rate, periods_per_year)
    return float(np.sqrt(periods_per_year) * excess.mean() / downside.std())


def max_drawdown(equity: Sequence[float]) -> float:
    """
    Largest peak-to-trough fall of an equity curve as a fraction (0.15 = 15%).
    The first value seeds the peak. Clamped to [0, 1].
    """
    if len(equity) == 0:
        return 0.0
    arr = np.asarray(equity, dtype=float)
    peak = np.maximum.accumulate(arr)
    dd = (peak - arr) / np.where(peak > 0, peak, 1)
    return float(min(max(np.max(dd), 0.0), 1.0))


def win_rate(pnls: Sequence[float]) -> float:
    """Fraction of trades with positive PnL."""
    if not pnls:
        return 0.0
    return sum(1 for p in pnls if p > 0) / len(pnls)


def profit_factor(pnls: Sequence[float]) -> float:
    """Gross profit / gross loss. With no losses, the gross profit itself."""
    wins = sum(p for p in pnls if p > 0)
    losses = sum(-p for p in pnls if p < 0)
    if losses <= 0:
        return wins
    return wins / losses


def expectancy(pnls: Sequence[float]) -> float:
    """Average PnL per trade."""
    if not pnls:
        return 0.0
    return sum(pnls) / len(pnls)


def compute_metrics(report: BacktestReport, periods_per_year: float = 252.0) -> PerformanceMetrics:
    """Full metrics from a report's closed trades and daily equity curve."""
    pnls = [t.pnl for t in report.trades]
    wins = [p for p in pnls if p > 0]
    losses = [p for p in pnls if p < 0]
    equity: List[float] = [report.initial_balance] + [p.value for p in report.equity_curve]
    arr = np.asarray(equity, dtype=float)
    prev = arr[:-1]
    rets = (np.diff(arr) / np.where(prev != 0, prev, 1.0)).tolist()
    return PerformanceMetrics(
        total_return_pct=report.profit_percent,
        sharpe_ratio=sharpe_ratio(rets, periods_per_year=periods_per_year),
        sortino_ratio=sortino_ratio(rets, periods_per_year=periods_per_year),
        max_drawdown=max_drawdown(equity),
        win_rate=win_rate(pnls),
        profit_factor=profit_factor(pnls),
        expectancy=expectancy(pnls),
        total_trades=len(pnls),
        winning_trades=len(wins),
        losing_trades=len(losses),
        avg_win=sum(wins) / len(wins) if wins else 0.0,
        avg_loss=sum(losses) / len(losses) if losses else 0.0,
    )

"""
Backtest engine: no lookahead, one position at a time, fills at the bar close.
Exits are checked before entries: stop loss, take profit, then signal reversal.
Optional slippage and fee simulation (both off by default).
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import numpy as np
import pandas as pd

from stock_engine.analysis.engine import SignalEngine
from stock_engine.analytics.metrics import max_drawdown, profit_factor, sharpe_ratio, win_rate
from stock_engine.core.errors import InvariantViolation
from stock_engine.core.types import (
    BacktestReport,
    ClosedTrade,
    ConsensusSignal,
    EquityPoint,
    History,
    PositionSide,
    RiskParameters,
    Sentiment,
    TradeSetup,
)
from stock_engine.indicators.technical import ensure_indicators
from stock_engine.risk.sizing import calculate_position_size

logger = logging.getLogger("stock_engine.backtest")

STOP_LOSS = "Stop Loss"
TAKE_PROFIT = "Take Profit"
SIGNAL_REVERSAL = "Signal Reversal"
END_OF_BACKTEST = "End of Backtest"


@dataclass
class BacktestConfig:
    """Simulation knobs. Percentages are fractions."""
    buy_threshold: float = 50.0
    risk_per_trade_pct: float = 0.02
    max_position_pct: float = 0.20
    stop_loss_pct: float = 0.05
    take_profit_pct: float = 0.10
    warmup_bars: int = 50
    slippage_bps: float = 0.0
    fee_bps: float = 0.0


@dataclass
class OpenPosition:
    side: PositionSide
    quantity: int
    entry_price: float
    entry_time: Any
    entry_fee: float

    @property
    def direction(self) -> int:
        return 1 if self.side == PositionSide.LONG else -1

    def pnl_pct(self, price: float) -> float:
        return (price - self.entry_price) / self.entry_price * self.direction


class SimulatedAccount:
    """
    Cash and at most one open position. A long entry pays its value, a short
    entry receives it; equity = cash + signed position value.
    """

    def __init__(self, symbol: str, cash: float, slippage_bps: float = 0.0, fee_bps: float = 0.0):
        self.symbol = symbol
        self.cash = cash
        self.slip = slippage_bps / 10000.0
        self.fee_rate = fee_bps / 10000.0
        self.position: Optional[OpenPosition] = None
        self.closed: List[ClosedTrade] = []

    def equity(self, price: float) -> float:
        if self.position is None:
            return self.cash
        return self.cash + self.position.quantity * price * self.position.direction

    def can_afford(self, quantity: int, price: float) -> bool:
        return quantity > 0 and quantity * price * (1 + self.slip) * (1 + self.fee_rate) <= self.cash

    def open(self, side: PositionSide, quantity: int, price: float, when: Any) -> OpenPosition:
        if self.position is not None:
            raise InvariantViolation(f"{self.symbol}: position already open, cannot open another at {when}")
        long = side == PositionSide.LONG
        fill = price * (1 + self.slip) if long else price * (1 - self.slip)
        value = fill * quantity
        fee = value * self.fee_rate
        self.cash += (-value - fee) if long else (value - fee)
        self.position = OpenPosition(side, quantity, fill, when, fee)
        return self.position

    def close(self, price: float, when: Any, reason: str) -> ClosedTrade:
        pos = self.position
        if pos is None:
            raise InvariantViolation(f"{self.symbol}: no open position to close at {when}")
        long = pos.side == PositionSide.LONG
        fill = price * (1 - self.slip) if long else price * (1 + self.slip)
        value = fill * pos.quantity
        fee = value * self.fee_rate
        self.cash += (value - fee) if long else (-value - fee)
        pnl = (fill - pos.entry_price) * pos.quantity * pos.direction - pos.entry_fee - fee
        trade = ClosedTrade(
            symbol=self.symbol,
            side=pos.side,
            quantity=pos.quantity,
            entry_price=pos.entry_price,
            exit_price=fill,
            pnl=pnl,
            pnl_pct=pnl / (pos.entry_price * pos.quantity) * 100,
            entry_time=pos.entry_time,
            exit_time=when,
            exit_reason=reason,
            fees=pos.entry_fee + fee,
        )
        self.closed.append(trade)
        self.position = None
        return trade


def empty_report(symbol: str, initial_balance: float, total_days: int = 0) -> BacktestReport:
    return BacktestReport(
        symbol=symbol,
        initial_balance=initial_balance,
        final_balance=initial_balance,
        profit=0.0,
        profit_percent=0.0,
        trade_count=0,
        win_rate=0.0,
        max_drawdown=0.0,
        profit_factor=0.0,
        total_days=total_days,
    )


def exit_reason(
    position: OpenPosition,
    price: float,
    signal: Optional[ConsensusSignal],
    config: BacktestConfig,
    final_bar: bool,
) -> str:
    """Why the position should close on this bar, or "" to keep holding."""
    change = position.pnl_pct(price)
    if change < -config.stop_loss_pct:
        return STOP_LOSS
    if change > config.take_profit_pct:
        return TAKE_PROFIT
    if signal is not None:
        against = Sentiment.BEARISH if position.side == PositionSide.LONG else Sentiment.BULLISH
        if signal.sentiment == against:
            return SIGNAL_REVERSAL
    if final_bar:
        return END_OF_BACKTEST
    return ""


class BacktestEngine:
    """
    Replays history bar by bar. On bar i the consensus sees rows 0..i only;
    indicators are causal, so they are computed once and sliced.
    """

    def __init__(self, config: Optional[BacktestConfig] = None, signal_engine: Optional[SignalEngine] = None):
        self.config = config or BacktestConfig()
        self.signal_engine = signal_engine or SignalEngine()

    def signal_path(self, df: pd.DataFrame) -> List[Optional[ConsensusSignal]]:
        """Consensus per bar; None before the warm-up ends."""
        signals: List[Optional[ConsensusSignal]] = []
        for i in range(len(df)):
            if i < self.config.warmup_bars:
                signals.append(None)
                continue
            signals.append(self.signal_engine.analyze(df.iloc[: i + 1]))
        return signals

    def run(self, symbol: str, history: History, initial_balance: float = 1000000.0) -> BacktestReport:
        """Run backtest on an OHLC history (columns: time, open, high, low, close[, volume])."""
        if initial_balance <= 0:
            raise ValueError(f"initial_balance must be positive, got {initial_balance}")
        df = ensure_indicators(history)
        if len(df) < self.config.warmup_bars + 1:
            logger.info("Backtest %s skipped: %d bars, need %d", symbol, len(df), self.config.warmup_bars + 1)
            return empty_report(symbol, initial_balance, len(df))
        return self.simulate(symbol, df, self.signal_path(df), initial_balance)

    def simulate(
        self,
        symbol: str,
        df: pd.DataFrame,
        signals: List[Optional[ConsensusSignal]],
        initial_balance: float,
    ) -> BacktestReport:
        """Trade a precomputed signal path. signals[i] belongs to df row i."""
        cfg = self.config
        account = SimulatedAccount(symbol, initial_balance, cfg.slippage_bps, cfg.fee_bps)
        curve: List[EquityPoint] = []
        last = len(df) - 1

        for i in range(cfg.warmup_bars, len(df)):
            bar = df.iloc[i]
            price = float(bar["close"])
            when = bar["time"]
            signal = signals[i]

            if account.position is not None:
                reason = exit_reason(account.position, price, signal, cfg, i == last)
                if reason:
                    account.close(price, when, reason)
            elif i < last and price > 0 and signal is not None and signal.sentiment != Sentiment.NEUTRAL \
                    and signal.confidence >= cfg.buy_threshold:
                setup = TradeSetup(symbol, price, signal.confidence, signal.sentiment)
                params = RiskParameters(account.cash, cfg.risk_per_trade_pct, cfg.max_position_pct)
                qty = calculate_position_size(setup, params)
                if account.can_afford(qty, price):
                    side = PositionSide.LONG if signal.sentiment == Sentiment.BULLISH else PositionSide.SHORT
                    account.open(side, qty, price, when)

            curve.append(EquityPoint(when, account.equity(price)))

        if account.position is not None:
            raise InvariantViolation(f"{symbol}: position left open after final bar")
        return self._report(symbol, initial_balance, account.cash, account.closed, curve, len(df))

    def _report(
        self,
        symbol: str,
        initial_balance: float,
        final_balance: float,
        trades: List[ClosedTrade],
        curve: List[EquityPoint],
        total_days: int,
    ) -> BacktestReport:
        pnls = [t.pnl for t in trades]
        values = np.array([initial_balance] + [p.value for p in curve], dtype=float)
        prev = values[:-1]
        returns = np.diff(values) / np.where(prev != 0, prev, 1.0)
        profit = final_balance - initial_balance
        report = BacktestReport(
            symbol=symbol,
            initial_balance=initial_balance,
            final_balance=final_balance,
            profit=profit,
            profit_percent=profit / initial_balance * 100,
            trade_count=len(trades),
            win_rate=win_rate(pnls) * 100,
            max_drawdown=max_drawdown(values.tolist()),
            profit_factor=profit_factor(pnls),
            trades=list(trades),
            equity_curve=curve,
            total_days=total_days,
            sharpe_ratio=sharpe_ratio(returns.tolist()),
        )
        logger.info(
            "Backtest %s: trades=%d profit=%.2f (%.2f%%) win_rate=%.1f%% max_dd=%.2f%%",
            symbol, report.trade_count, report.profit, report.profit_percent,
            report.win_rate, report.max_drawdown * 100,
        )
        return report


def run_backtest(
    symbol: str,
    history: History,
    initial_balance: float = 1000000.0,
    config: Optional[BacktestConfig] = None,
) -> BacktestReport:
    return BacktestEngine(config).run(symbol, history, initial_balance)

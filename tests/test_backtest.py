"""Unit tests for backtesting.engine and backtesting.optimizer."""

import pytest

from stock_engine.analytics.metrics import max_drawdown
from stock_engine.backtesting.engine import (
    BacktestConfig,
    BacktestEngine,
    SimulatedAccount,
    run_backtest,
)
from stock_engine.backtesting.optimizer import find_optimal_threshold
from stock_engine.core.errors import InvariantViolation
from stock_engine.core.types import ConsensusSignal, PositionSide, Regime, Sentiment

EXIT_REASONS = {"Stop Loss", "Take Profit", "Signal Reversal", "End of Backtest"}


class FixedSignalEngine:
    """Always returns the same consensus."""

    def __init__(self, sentiment, confidence):
        self.signal = ConsensusSignal(sentiment=sentiment, confidence=confidence, regime=Regime.SIDEWAYS)
        self.calls = 0

    def analyze(self, history):
        self.calls += 1
        return self.signal


def _assert_report_identities(report):
    assert report.final_balance == pytest.approx(report.initial_balance + report.profit)
    assert report.profit_percent == pytest.approx(report.profit / report.initial_balance * 100)
    assert report.trade_count == len(report.trades)
    assert report.profit == pytest.approx(sum(t.pnl for t in report.trades))
    assert 0.0 <= report.max_drawdown <= 1.0
    values = [report.initial_balance] + [p.value for p in report.equity_curve]
    assert report.max_drawdown == pytest.approx(max_drawdown(values))
    for t in report.trades:
        assert t.exit_reason in EXIT_REASONS


def test_short_history_gives_empty_report(short_history):
    report = run_backtest("X", short_history, 100000.0)
    assert report.trade_count == 0
    assert report.final_balance == 100000.0
    assert report.profit == 0.0
    assert report.trades == []


def test_exactly_warmup_bars_is_empty(uptrend):
    report = run_backtest("X", uptrend.iloc[:50], 100000.0)
    assert report.trade_count == 0


def test_uptrend_goes_long_and_profits(uptrend):
    report = run_backtest("UP", uptrend, 1000000.0, BacktestConfig(buy_threshold=40))
    _assert_report_identities(report)
    assert report.trade_count >= 1
    assert all(t.side == PositionSide.LONG for t in report.trades)
    assert all(t.pnl > 0 for t in report.trades)
    assert report.profit > 0
    assert report.win_rate == 100.0
    # No losing trades: profit factor is gross wins
    assert report.profit_factor == pytest.approx(sum(t.pnl for t in report.trades))
    assert report.trades[-1].exit_reason in ("Take Profit", "End of Backtest")
    assert len(report.equity_curve) == len(uptrend) - 50


def test_downtrend_goes_short_and_profits(downtrend):
    report = run_backtest("DOWN", downtrend, 1000000.0, BacktestConfig(buy_threshold=40))
    _assert_report_identities(report)
    assert report.trade_count >= 1
    assert all(t.side == PositionSide.SHORT for t in report.trades)
    assert report.profit > 0


def test_take_profit_then_reentry(uptrend):
    engine = BacktestEngine(BacktestConfig(buy_threshold=50), FixedSignalEngine(Sentiment.BULLISH, 90))
    report = engine.run("UP", uptrend, 1000000.0)
    _assert_report_identities(report)
    # Entries at 150, 167, 185; exits above +10% and at the final bar
    reasons = [t.exit_reason for t in report.trades]
    assert reasons == ["Take Profit", "Take Profit", "End of Backtest"]
    assert [t.entry_price for t in report.trades] == [150.0, 167.0, 185.0]
    assert report.trades[-1].exit_price == 199.0


def test_stop_loss_exits(downtrend):
    engine = BacktestEngine(BacktestConfig(), FixedSignalEngine(Sentiment.BULLISH, 90))
    report = engine.run("DOWN", downtrend, 1000000.0)
    _assert_report_identities(report)
    assert report.trades[0].exit_reason == "Stop Loss"
    assert report.trades[0].entry_price == 150.0
    assert report.trades[0].exit_price == 142.0
    assert report.win_rate == 0.0
    assert report.profit_factor == 0.0
    assert report.profit < 0
    assert report.max_drawdown > 0


def test_signal_reversal_exit(uptrend):
    class Flipping(FixedSignalEngine):
        def analyze(self, history):
            self.calls += 1
            sentiment = Sentiment.BULLISH if len(history) < 55 else Sentiment.BEARISH
            return ConsensusSignal(sentiment=sentiment, confidence=90, regime=Regime.SIDEWAYS)

    report = BacktestEngine(BacktestConfig(), Flipping(Sentiment.BULLISH, 90)).run("X", uptrend, 1000000.0)
    assert report.trades[0].exit_reason == "Signal Reversal"
    assert report.trades[0].side == PositionSide.LONG
    # Reopened short on the next bar
    assert report.trades[1].side == PositionSide.SHORT


def test_below_threshold_never_trades(uptrend):
    engine = BacktestEngine(BacktestConfig(buy_threshold=95), FixedSignalEngine(Sentiment.BULLISH, 90))
    report = engine.run("X", uptrend, 1000000.0)
    assert report.trade_count == 0
    assert report.final_balance == 1000000.0


def test_no_entry_on_final_bar(uptrend):
    class LateSignal(FixedSignalEngine):
        def analyze(self, history):
            sentiment = Sentiment.BULLISH if len(history) == len(uptrend) else Sentiment.NEUTRAL
            return ConsensusSignal(sentiment=sentiment, confidence=90, regime=Regime.SIDEWAYS)

    report = BacktestEngine(BacktestConfig(), LateSignal(Sentiment.NEUTRAL, 0)).run("X", uptrend, 1000000.0)
    assert report.trade_count == 0


def test_costs_reduce_profit(uptrend):
    free = BacktestEngine(BacktestConfig(), FixedSignalEngine(Sentiment.BULLISH, 90)).run("X", uptrend, 1000000.0)
    costly = BacktestEngine(
        BacktestConfig(slippage_bps=10, fee_bps=10), FixedSignalEngine(Sentiment.BULLISH, 90)
    ).run("X", uptrend, 1000000.0)
    _assert_report_identities(costly)
    assert costly.profit < free.profit
    assert all(t.fees > 0 for t in costly.trades)


def test_signal_path_sees_no_future(uptrend):
    seen = []

    class Recorder(FixedSignalEngine):
        def analyze(self, history):
            seen.append(len(history))
            return self.signal

    engine = BacktestEngine(BacktestConfig(), Recorder(Sentiment.NEUTRAL, 0))
    engine.run("X", uptrend, 1000000.0)
    assert seen == list(range(51, 101))


def test_second_open_position_is_invariant_violation():
    account = SimulatedAccount("X", 100000.0)
    account.open(PositionSide.LONG, 10, 100.0, "d1")
    with pytest.raises(InvariantViolation):
        account.open(PositionSide.SHORT, 10, 100.0, "d2")


def test_short_account_cash_model():
    account = SimulatedAccount("X", 100000.0)
    account.open(PositionSide.SHORT, 10, 100.0, "d1")
    assert account.cash == 101000.0
    assert account.equity(90.0) == 100100.0
    trade = account.close(90.0, "d2", "Take Profit")
    assert trade.pnl == pytest.approx(100.0)
    assert account.cash == pytest.approx(100100.0)


def test_rejects_non_positive_balance(uptrend):
    with pytest.raises(ValueError):
        run_backtest("X", uptrend, 0.0)


def test_optimizer_prefers_profit_then_fewer_trades(uptrend):
    result = find_optimal_threshold("UP", uptrend, 1000000.0, thresholds=[40, 99])
    assert [t for t, _ in result.results] == [40, 99]
    profitable = result.results[0][1]
    assert profitable.profit > 0
    assert result.best_threshold == 40
    assert result.best_report is profitable


def test_optimizer_tie_breaks_on_trade_count(short_history):
    result = find_optimal_threshold("X", short_history, 1000.0)
    assert result.best_threshold == 60
    assert len(result.results) == 7


def test_report_to_dict(uptrend):
    d = run_backtest("UP", uptrend, 1000000.0, BacktestConfig(buy_threshold=40)).to_dict()
    assert d["symbol"] == "UP"
    assert isinstance(d["trades"], list)
    assert d["trades"][0]["side"] == "LONG"

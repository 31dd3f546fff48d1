"""Unit tests for execution.paper and execution.store."""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from stock_engine.core.errors import ProviderError, RiskRejected
from stock_engine.core.types import OrderType, PositionSide, Side, TradeRequest
from stock_engine.data.base import QuoteProvider
from stock_engine.execution.paper import PaperBroker, PaperLedger
from stock_engine.execution.store import InMemoryPortfolioStore, JsonPortfolioStore
from stock_engine.risk.gate import RiskGate

START = 1000000.0


class Clock:
    def __init__(self):
        self.now = datetime(2024, 6, 3, 14, 30, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class StaticQuotes(QuoteProvider):
    def __init__(self, prices=None, fail=False):
        self.prices = dict(prices or {})
        self.fail = fail

    def get_quote(self, symbol):
        if self.fail or symbol not in self.prices:
            raise ProviderError(f"no quote for {symbol}", symbol)
        return self.prices[symbol]


class FailingStore(InMemoryPortfolioStore):
    def save(self, portfolio):
        raise OSError("disk full")


@pytest.fixture
def clock():
    return Clock()


def _ledger(clock, **kwargs):
    kwargs.setdefault("risk_gate", RiskGate(cooldown_seconds=0))
    kwargs.setdefault("store", InMemoryPortfolioStore())
    return PaperLedger(initial_cash=START, clock=clock, **kwargs)


def _req(side, qty, price, symbol="AAA", order_type=OrderType.MARKET):
    return TradeRequest(symbol=symbol, side=Side(side), quantity=qty, price=price, order_type=order_type)


def test_long_round_trip_loses_only_costs(clock):
    ledger = _ledger(clock)
    assert ledger.execute_trade(_req("BUY", 10, 100.0)).success
    assert ledger.execute_trade(_req("SELL", 10, 100.0)).success
    p = ledger.get_portfolio()
    # 5 bps slippage each way + 10 bps commission on each notional
    assert START - p.cash == pytest.approx(0.5 + 1.0005 + 0.5 + 0.9995)
    assert p.positions == []
    assert p.equity == pytest.approx(p.cash)


def test_profitable_short_round_trip(clock):
    ledger = _ledger(clock)
    opened = ledger.execute_trade(_req("SELL", 10, 100.0))
    assert opened.success
    pos = ledger.get_position("AAA")
    assert pos.side == PositionSide.SHORT
    assert pos.quantity == 10
    assert pos.signed_quantity == -10
    closed = ledger.execute_trade(_req("BUY", 10, 90.0))
    assert closed.success
    assert closed.trade.realized_pnl == pytest.approx((99.95 - 90.045) * 10)
    p = ledger.get_portfolio()
    assert p.cash > START
    assert p.positions == []


def test_short_disabled(clock):
    ledger = _ledger(clock, risk_gate=RiskGate(cooldown_seconds=0, allow_short=False))
    result = ledger.execute_trade(_req("SELL", 10, 100.0))
    assert not result.success
    assert result.message == "Insufficient Holdings"
    assert ledger.get_portfolio().cash == START


def test_sell_more_than_held(clock):
    ledger = _ledger(clock)
    ledger.execute_trade(_req("BUY", 5, 100.0))
    result = ledger.execute_trade(_req("SELL", 6, 100.0))
    assert (result.success, result.message) == (False, "Insufficient Holdings")
    assert ledger.get_position("AAA").quantity == 5


def test_buy_cannot_cross_short(clock):
    ledger = _ledger(clock)
    ledger.execute_trade(_req("SELL", 5, 100.0))
    result = ledger.execute_trade(_req("BUY", 6, 100.0))
    assert not result.success
    assert ledger.get_position("AAA").side == PositionSide.SHORT


@pytest.mark.parametrize("qty,price", [(0, 100.0), (-1, 100.0), (1, 0.0), (1, -5.0)])
def test_invalid_request_rejected_without_mutation(clock, qty, price):
    store = InMemoryPortfolioStore()
    ledger = _ledger(clock, store=store)
    before = ledger.get_portfolio()
    result = ledger.execute_trade(_req("BUY", qty, price))
    assert not result.success
    assert result.trade is None
    assert store.saves == 0
    assert ledger.get_portfolio() == before


def test_cooldown_blocks_rapid_trades(clock):
    ledger = _ledger(clock, risk_gate=RiskGate(cooldown_seconds=60))
    assert ledger.execute_trade(_req("BUY", 1, 100.0)).success
    clock.advance(seconds=10)
    blocked = ledger.execute_trade(_req("BUY", 1, 100.0))
    assert not blocked.success
    assert "Cooldown" in blocked.message
    clock.advance(seconds=60)
    assert ledger.execute_trade(_req("BUY", 1, 100.0)).success


def test_exposure_cap(clock):
    ledger = _ledger(clock)
    result = ledger.execute_trade(_req("BUY", 2100, 100.0))
    assert not result.success
    assert "Max Position Size" in result.message


def test_insufficient_funds(clock):
    ledger = _ledger(clock, risk_gate=RiskGate(cooldown_seconds=0, max_position_pct=10.0))
    result = ledger.execute_trade(_req("BUY", 10000, 100.0))
    assert (result.success, result.message) == (False, "Insufficient Funds")


def test_daily_loss_breaker(clock):
    quotes = StaticQuotes({"AAA": 100.0})
    ledger = _ledger(clock, quote_provider=quotes)
    assert ledger.execute_trade(_req("BUY", 1000, 100.0)).success
    quotes.prices["AAA"] = 40.0
    result = ledger.execute_trade(_req("BUY", 1, 50.0, symbol="BBB"))
    assert not result.success
    assert "Daily Loss" in result.message
    # A new day resets the baseline to the current equity
    clock.advance(days=1)
    assert ledger.execute_trade(_req("BUY", 1, 50.0, symbol="BBB")).success
    assert ledger.get_portfolio().daily_start_equity < START


def test_vwap_average_on_increase(clock):
    ledger = _ledger(clock)
    ledger.execute_trade(_req("BUY", 10, 100.0, order_type=OrderType.LIMIT))
    ledger.execute_trade(_req("BUY", 30, 120.0, order_type=OrderType.LIMIT))
    pos = ledger.get_position("AAA")
    assert pos.quantity == 40
    assert pos.average_price == pytest.approx(115.0)
    # Reductions keep the average
    ledger.execute_trade(_req("SELL", 20, 130.0, order_type=OrderType.LIMIT))
    assert ledger.get_position("AAA").average_price == pytest.approx(115.0)


def test_limit_orders_fill_at_limit(clock):
    ledger = _ledger(clock)
    result = ledger.execute_trade(_req("BUY", 10, 100.0, order_type=OrderType.LIMIT))
    assert result.trade.price == 100.0
    assert result.trade.commission == pytest.approx(1.0)


def test_quote_failure_falls_back_to_last_price(clock, caplog):
    ledger = _ledger(clock, quote_provider=StaticQuotes(fail=True))
    with caplog.at_level(logging.WARNING, logger="stock_engine"):
        assert ledger.execute_trade(_req("BUY", 10, 100.0)).success
        p = ledger.get_portfolio()
    assert p.equity == pytest.approx(p.cash + 10 * 100.05)
    assert any("unavailable" in r.message for r in caplog.records)


def test_failed_save_leaves_ledger_unchanged(clock):
    ledger = _ledger(clock, store=FailingStore())
    with pytest.raises(OSError):
        ledger.execute_trade(_req("BUY", 10, 100.0))
    p = ledger.get_portfolio()
    assert p.cash == START
    assert p.trades == []


def test_trade_log_is_capped(clock):
    ledger = _ledger(clock, max_trades=3)
    for _ in range(5):
        ledger.execute_trade(_req("BUY", 1, 100.0))
    trades = ledger.get_portfolio().trades
    assert len(trades) == 3
    assert len({t.id for t in trades}) == 3


def test_get_portfolio_is_a_copy(clock):
    ledger = _ledger(clock)
    ledger.execute_trade(_req("BUY", 10, 100.0))
    snap = ledger.get_portfolio()
    snap.cash = 0.0
    snap.positions.clear()
    assert ledger.get_portfolio().cash > 0
    assert ledger.get_position("AAA") is not None


def test_reset_account(clock, tmp_path):
    store = JsonPortfolioStore(tmp_path / "paper.json")
    ledger = _ledger(clock, store=store)
    ledger.execute_trade(_req("BUY", 10, 100.0))
    assert store.path.exists()
    portfolio = ledger.reset_account()
    assert portfolio.cash == START
    assert portfolio.trades == []
    assert not store.path.exists()


def test_json_store_persists_between_ledgers(clock, tmp_path):
    path = tmp_path / "state" / "paper.json"
    first = _ledger(clock, store=JsonPortfolioStore(path))
    first.execute_trade(_req("SELL", 10, 100.0, order_type=OrderType.LIMIT))
    second = _ledger(clock, store=JsonPortfolioStore(path))
    p = second.get_portfolio()
    assert p.cash == pytest.approx(START + 1000.0 - 1.0)
    assert p.positions[0].side == PositionSide.SHORT
    assert p.trades[0].side == Side.SELL


def test_json_store_missing_file(tmp_path):
    assert JsonPortfolioStore(tmp_path / "none.json").load() is None


def test_broker_raises_on_rejection(clock):
    broker = PaperBroker(_ledger(clock, risk_gate=RiskGate(cooldown_seconds=0, allow_short=False)))
    assert broker.name == "paper"
    trade = broker.execute_trade("AAA", "BUY", 5, 100.0)
    assert trade.side == Side.BUY
    with pytest.raises(RiskRejected) as exc:
        broker.execute_trade("AAA", Side.SELL, 6, 100.0)
    assert exc.value.reason == "Insufficient Holdings"
    assert broker.get_portfolio().get_position("AAA").quantity == 5


def test_json_store_ignores_malformed_state(clock, tmp_path):
    path = tmp_path / "paper.json"
    path.write_text('{"cash": 5.0, "equity": 5.0, "positions": null}', encoding="utf-8")
    assert JsonPortfolioStore(path).load() is None
    ledger = _ledger(clock, store=JsonPortfolioStore(path))
    assert ledger.get_portfolio().cash == START

"""
Paper trading ledger: simulated account with risk gate, slippage, commission
and persistence. One RLock serializes executions per account.
"""

from __future__ import annotations
import copy
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from stock_engine.core.errors import ProviderError, RiskRejected
from stock_engine.core.types import (
    ExecutionResult,
    OrderType,
    Portfolio,
    Position,
    PositionSide,
    Side,
    Trade,
    TradeRequest,
)
from stock_engine.data.base import QuoteProvider
from stock_engine.execution.base import BrokerProvider
from stock_engine.execution.store import InMemoryPortfolioStore, PortfolioStore
from stock_engine.risk.gate import RiskGate

logger = logging.getLogger("stock_engine.execution.paper")

ORDER_EXECUTED = "Order Executed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaperLedger:
    """
    Explicitly constructed account; nothing is global. Every execution works on
    a copy of the portfolio and commits it only after the store saved it, so a
    rejected order or a failed save leaves the ledger unchanged.
    """

    def __init__(
        self,
        initial_cash: float = 1000000.0,
        slippage_bps: float = 5.0,
        fee_bps: float = 10.0,
        risk_gate: Optional[RiskGate] = None,
        store: Optional[PortfolioStore] = None,
        quote_provider: Optional[QuoteProvider] = None,
        max_trades: int = 50,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.initial_cash = initial_cash
        self.slippage_bps = slippage_bps
        self.fee_bps = fee_bps
        self.risk_gate = risk_gate or RiskGate()
        self.store = store or InMemoryPortfolioStore()
        self.quote_provider = quote_provider
        self.max_trades = max_trades
        self._clock = clock or _utcnow
        self._lock = threading.RLock()
        self._portfolio = self.store.load() or self._fresh_portfolio()

    def _fresh_portfolio(self) -> Portfolio:
        now = self._clock()
        return Portfolio(
            cash=self.initial_cash,
            equity=self.initial_cash,
            initial_cash=self.initial_cash,
            daily_start_equity=self.initial_cash,
            day_start_date=now.date().isoformat(),
            last_updated=now.isoformat(),
        )

    def _roll_day(self, portfolio: Portfolio, now: datetime) -> None:
        today = now.date().isoformat()
        if portfolio.day_start_date != today:
            portfolio.daily_start_equity = portfolio.equity
            portfolio.day_start_date = today

    def _mark(self, portfolio: Portfolio) -> float:
        """Refresh last prices from the quote provider and recompute equity."""
        if self.quote_provider is not None:
            for pos in portfolio.positions:
                try:
                    pos.last_price = self.quote_provider.get_quote(pos.symbol)
                except ProviderError as e:
                    logger.warning("Quote for %s unavailable, using last price %s: %s", pos.symbol, pos.mark_price, e)
        return portfolio.recompute_equity()

    def fill_price(self, request: TradeRequest) -> float:
        """Market orders slip against the trader; limit orders fill at their price."""
        if request.order_type == OrderType.LIMIT:
            return request.price
        slip = self.slippage_bps / 10000.0
        if request.side == Side.BUY:
            return request.price * (1 + slip)
        return request.price * (1 - slip)

    def get_portfolio(self) -> Portfolio:
        """Marked copy of the account; mutating it does not touch the ledger."""
        with self._lock:
            snapshot = copy.deepcopy(self._portfolio)
        self._mark(snapshot)
        return snapshot

    def get_position(self, symbol: str) -> Optional[Position]:
        with self._lock:
            pos = self._portfolio.get_position(symbol)
            return copy.deepcopy(pos)

    def execute_trade(self, request: TradeRequest) -> ExecutionResult:
        with self._lock:
            if request.quantity <= 0:
                return self._rejected(request, f"Invalid quantity: {request.quantity}")
            if request.price <= 0:
                return self._rejected(request, f"Invalid price: {request.price}")

            now = self._clock()
            work = copy.deepcopy(self._portfolio)
            self._mark(work)
            self._roll_day(work, now)

            fill = self.fill_price(request)
            notional = fill * request.quantity
            commission = notional * self.fee_bps / 10000.0
            check = self.risk_gate.check_trade(work, request, fill, commission, now)
            if not check.allowed:
                return ExecutionResult(success=False, message=check.reason)

            realized = self._apply_fill(work, request, fill, notional, commission)
            trade = Trade(
                id=uuid.uuid4().hex[:8],
                timestamp=now.isoformat(),
                symbol=request.symbol,
                side=request.side,
                quantity=request.quantity,
                price=fill,
                total=notional,
                commission=commission,
                reason=request.reason,
                order_type=request.order_type,
                realized_pnl=realized,
            )
            work.trades.append(trade)
            if len(work.trades) > self.max_trades:
                work.trades = work.trades[-self.max_trades:]
            self._mark(work)
            work.last_updated = now.isoformat()

            self.store.save(work)
            self._portfolio = work
            logger.info(
                "Executed %s %s x%s @ %.4f (commission %.2f, realized %.2f) equity=%.2f",
                request.side.value, request.symbol, request.quantity, fill, commission, realized, work.equity,
            )
            return ExecutionResult(success=True, message=ORDER_EXECUTED, trade=trade)

    def _apply_fill(
        self,
        portfolio: Portfolio,
        request: TradeRequest,
        fill: float,
        notional: float,
        commission: float,
    ) -> float:
        """Move cash and the position for one fill. Returns realized P&L (before commission)."""
        qty = request.quantity
        buying = request.side == Side.BUY
        if buying:
            portfolio.cash -= notional + commission
        else:
            portfolio.cash += notional - commission

        pos = portfolio.get_position(request.symbol)
        opening_side = PositionSide.LONG if buying else PositionSide.SHORT
        if pos is None:
            portfolio.positions.append(Position(request.symbol, opening_side, qty, fill, last_price=fill))
            return 0.0

        pos.last_price = fill
        if pos.side == opening_side:
            total = pos.quantity + qty
            pos.average_price = (pos.quantity * pos.average_price + qty * fill) / total
            pos.quantity = total
            return 0.0

        # Reduction; the risk gate already refused anything that would cross zero
        direction = 1 if pos.side == PositionSide.LONG else -1
        realized = (fill - pos.average_price) * qty * direction
        pos.quantity -= qty
        if pos.quantity <= 1e-12:
            portfolio.positions = [p for p in portfolio.positions if p.symbol != request.symbol]
        return realized

    def reset_account(self) -> Portfolio:
        """Delete persisted state and start over with the initial cash."""
        with self._lock:
            self.store.delete()
            self._portfolio = self._fresh_portfolio()
            logger.info("Paper account reset to %.2f", self.initial_cash)
            return copy.deepcopy(self._portfolio)

    @staticmethod
    def _rejected(request: TradeRequest, message: str) -> ExecutionResult:
        logger.warning("Trade rejected %s %s: %s", request.side.value, request.symbol, message)
        return ExecutionResult(success=False, message=message)


class PaperBroker(BrokerProvider):
    """BrokerProvider over a PaperLedger. Refused orders raise RiskRejected."""

    name = "paper"

    def __init__(self, ledger: PaperLedger):
        self.ledger = ledger

    def get_portfolio(self) -> Portfolio:
        return self.ledger.get_portfolio()

    def execute_trade(
        self,
        symbol: str,
        side: Side,
        quantity: float,
        price: float,
        order_type: OrderType = OrderType.MARKET,
        reason: str = "",
    ) -> Trade:
        request = TradeRequest(
            symbol=symbol,
            side=Side(side),
            quantity=quantity,
            price=price,
            reason=reason,
            order_type=OrderType(order_type),
        )
        result = self.ledger.execute_trade(request)
        if not result.success:
            raise RiskRejected(result.message)
        return result.trade

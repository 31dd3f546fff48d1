"""
Risk gate (circuit breaker) for the paper ledger.
Checks in order: daily loss, cooldown, holdings, exposure, funds.
The first failing check decides the rejection reason.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from stock_engine.core.types import Portfolio, PositionSide, Side, TradeRequest

logger = logging.getLogger("stock_engine.risk")

INSUFFICIENT_HOLDINGS = "Insufficient Holdings"
INSUFFICIENT_FUNDS = "Insufficient Funds"


@dataclass
class RiskResult:
    """Result of risk check: allowed or rejected + reason."""
    allowed: bool
    reason: str = ""


def parse_timestamp(value: str) -> datetime:
    ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class RiskGate:
    """
    Enforces: max daily loss vs the day's starting equity, per-symbol cooldown,
    holdings and shorting policy, max position exposure, available cash.
    """

    def __init__(
        self,
        max_daily_loss_pct: float = 0.05,
        max_position_pct: float = 0.20,
        cooldown_seconds: float = 60.0,
        allow_short: bool = True,
    ):
        self.max_daily_loss_pct = max_daily_loss_pct
        self.max_position_pct = max_position_pct
        self.cooldown_seconds = cooldown_seconds
        self.allow_short = allow_short

    def check_daily_loss(self, portfolio: Portfolio) -> bool:
        """Return False if today's loss exceeds the cap."""
        start = portfolio.daily_start_equity
        if start <= 0:
            return True
        return (start - portfolio.equity) / start <= self.max_daily_loss_pct

    def check_cooldown(self, portfolio: Portfolio, symbol: str, now: datetime) -> bool:
        """Return False if the symbol traded less than cooldown_seconds ago."""
        if self.cooldown_seconds <= 0:
            return True
        last = portfolio.last_trade_for(symbol)
        if last is None:
            return True
        elapsed = (now - parse_timestamp(last.timestamp)).total_seconds()
        return elapsed >= self.cooldown_seconds

    def _holdings(self, portfolio: Portfolio, request: TradeRequest) -> tuple[Optional[str], bool]:
        """(rejection reason or None, whether the order opens or grows a position)."""
        pos = portfolio.get_position(request.symbol)
        if request.side == Side.SELL:
            if pos is not None and pos.side == PositionSide.LONG:
                if request.quantity > pos.quantity:
                    return INSUFFICIENT_HOLDINGS, False
                return None, False
            if not self.allow_short:
                return INSUFFICIENT_HOLDINGS, False
            return None, True
        if pos is not None and pos.side == PositionSide.SHORT:
            if request.quantity > pos.quantity:
                return "Order would cross zero: cover the short before going long", False
            return None, False
        return None, True

    def check_exposure(self, portfolio: Portfolio, request: TradeRequest, fill_price: float) -> bool:
        """Return False if the resulting position would exceed max_position_pct of equity."""
        if portfolio.equity <= 0:
            return False
        pos = portfolio.get_position(request.symbol)
        existing = pos.quantity * pos.mark_price if pos is not None else 0.0
        after = existing + request.quantity * fill_price
        return after / portfolio.equity <= self.max_position_pct

    def check_trade(
        self,
        portfolio: Portfolio,
        request: TradeRequest,
        fill_price: Optional[float] = None,
        commission: float = 0.0,
        now: Optional[datetime] = None,
    ) -> RiskResult:
        now = now or datetime.now(timezone.utc)
        price = fill_price if fill_price is not None else request.price

        if not self.check_daily_loss(portfolio):
            return self._reject(
                request, f"Circuit Breaker: Max Daily Loss Exceeded ({self.max_daily_loss_pct:.0%})"
            )
        if not self.check_cooldown(portfolio, request.symbol, now):
            return self._reject(
                request, f"Circuit Breaker: Cooldown Active ({self.cooldown_seconds:g}s)"
            )
        reason, grows = self._holdings(portfolio, request)
        if reason:
            return self._reject(request, reason)
        if grows and not self.check_exposure(portfolio, request, price):
            return self._reject(
                request, f"Circuit Breaker: Max Position Size Exceeded ({self.max_position_pct:.0%})"
            )
        if request.side == Side.BUY and portfolio.cash < request.quantity * price + commission:
            return self._reject(request, INSUFFICIENT_FUNDS)
        return RiskResult(allowed=True)

    @staticmethod
    def _reject(request: TradeRequest, reason: str) -> RiskResult:
        logger.warning("Trade rejected %s %s x%s: %s", request.side.value, request.symbol, request.quantity, reason)
        return RiskResult(allowed=False, reason=reason)

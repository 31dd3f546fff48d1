"""
Core data types for bars, opinions, signals, positions, trades and reports.
"""

from __future__ import annotations
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence, Union

import pandas as pd


class Side(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class Signal(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class Sentiment(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class Regime(str, Enum):
    BULL_TREND = "BULL_TREND"
    BEAR_TREND = "BEAR_TREND"
    SIDEWAYS = "SIDEWAYS"
    VOLATILE = "VOLATILE"
    SQUEEZE = "SQUEEZE"


class PositionSide(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class OrderType(str, Enum):
    MARKET = "MARKET"
    LIMIT = "LIMIT"


PRICE_COLUMNS = ["time", "open", "high", "low", "close", "volume"]


@dataclass(frozen=True)
class Bar:
    """OHLC(V) daily bar."""
    time: Union[str, date, datetime]
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


History = Union[pd.DataFrame, Sequence[Bar]]


def bars_to_frame(history: History) -> pd.DataFrame:
    """
    Normalise a price history into a DataFrame with PRICE_COLUMNS.
    Rows without a close are skipped. Input is never mutated.
    """
    if isinstance(history, pd.DataFrame):
        df = history.copy()
    else:
        df = pd.DataFrame([asdict(b) for b in history], columns=PRICE_COLUMNS)
    if df.empty:
        return pd.DataFrame(columns=PRICE_COLUMNS)
    if "volume" not in df.columns:
        df["volume"] = 0.0
    if "time" not in df.columns:
        df["time"] = range(len(df))
    for col in ("open", "high", "low", "close", "volume"):
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
    df = df.dropna(subset=["close"])
    # Missing open/high/low on a row fall back to its close
    for col in ("open", "high", "low"):
        df[col] = df[col].fillna(df["close"])
    df["volume"] = df["volume"].fillna(0.0)
    return df.reset_index(drop=True)


@dataclass(frozen=True)
class AgentOpinion:
    """One agent's directional opinion on a price history."""
    agent_name: str
    role: str
    signal: Signal
    confidence: float
    sentiment: Sentiment
    reason: str

    def to_dict(self) -> dict:
        return {
            "agent_name": self.agent_name,
            "role": self.role,
            "signal": self.signal.value,
            "confidence": self.confidence,
            "sentiment": self.sentiment.value,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ConsensusSignal:
    """Weighted consensus across all agents for the latest bar."""
    sentiment: Sentiment
    confidence: float
    regime: Regime
    signals: List[str] = field(default_factory=list)
    signal: Signal = Signal.HOLD
    score: float = 0.0
    price: float = 0.0
    opinions: List[AgentOpinion] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "sentiment": self.sentiment.value,
            "confidence": self.confidence,
            "regime": self.regime.value,
            "signals": list(self.signals),
            "signal": self.signal.value,
            "score": self.score,
            "price": self.price,
            "opinions": [o.to_dict() for o in self.opinions],
        }


@dataclass(frozen=True)
class TradeSetup:
    """Input to position sizing and limit pricing."""
    symbol: str
    price: float
    confidence: float
    sentiment: Sentiment


@dataclass(frozen=True)
class RiskParameters:
    """Account risk budget. Percentages are fractions (0.2 = 20%)."""
    account_equity: float
    risk_per_trade_pct: float = 0.02
    max_position_pct: float = 0.20


@dataclass
class Position:
    """Open position state. Quantity is unsigned; side carries direction."""
    symbol: str
    side: PositionSide
    quantity: float
    average_price: float
    last_price: Optional[float] = None

    @property
    def signed_quantity(self) -> float:
        return self.quantity if self.side == PositionSide.LONG else -self.quantity

    @property
    def mark_price(self) -> float:
        return self.last_price if self.last_price is not None else self.average_price

    @property
    def market_value(self) -> float:
        """Signed contribution to equity: long adds, short owes."""
        return self.signed_quantity * self.mark_price

    @property
    def unrealized_pnl(self) -> float:
        return (self.mark_price - self.average_price) * self.signed_quantity

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "side": self.side.value,
            "quantity": self.quantity,
            "average_price": self.average_price,
            "last_price": self.last_price,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Position":
        return cls(
            symbol=data["symbol"],
            side=PositionSide(data["side"]),
            quantity=float(data["quantity"]),
            average_price=float(data["average_price"]),
            last_price=data.get("last_price"),
        )


@dataclass(frozen=True)
class Trade:
    """Executed fill on the paper ledger."""
    id: str
    timestamp: str
    symbol: str
    side: Side
    quantity: float
    price: float
    total: float
    commission: float
    reason: str
    order_type: OrderType = OrderType.MARKET
    realized_pnl: float = 0.0

    def to_dict(self) -> dict:
        d = asdict(self)
        d["side"] = self.side.value
        d["order_type"] = self.order_type.value
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "Trade":
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            symbol=data["symbol"],
            side=Side(data["side"]),
            quantity=float(data["quantity"]),
            price=float(data["price"]),
            total=float(data["total"]),
            commission=float(data.get("commission", 0.0)),
            reason=data.get("reason", ""),
            order_type=OrderType(data.get("order_type", OrderType.MARKET.value)),
            realized_pnl=float(data.get("realized_pnl", 0.0)),
        )


@dataclass
class Portfolio:
    """Paper account. equity = cash + sum of signed position mark values."""
    cash: float
    equity: float
    initial_cash: float
    daily_start_equity: float
    day_start_date: str
    positions: List[Position] = field(default_factory=list)
    trades: List[Trade] = field(default_factory=list)
    last_updated: str = ""

    def get_position(self, symbol: str) -> Optional[Position]:
        for p in self.positions:
            if p.symbol == symbol:
                return p
        return None

    def recompute_equity(self) -> float:
        self.equity = self.cash + sum(p.market_value for p in self.positions)
        return self.equity

    def last_trade_for(self, symbol: str) -> Optional[Trade]:
        for t in reversed(self.trades):
            if t.symbol == symbol:
                return t
        return None

    def to_dict(self) -> dict:
        return {
            "cash": self.cash,
            "equity": self.equity,
            "initial_cash": self.initial_cash,
            "daily_start_equity": self.daily_start_equity,
            "day_start_date": self.day_start_date,
            "positions": [p.to_dict() for p in self.positions],
            "trades": [t.to_dict() for t in self.trades],
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Portfolio":
        return cls(
            cash=float(data["cash"]),
            equity=float(data["equity"]),
            initial_cash=float(data.get("initial_cash", data["cash"])),
            daily_start_equity=float(data.get("daily_start_equity", data["equity"])),
            day_start_date=data.get("day_start_date", ""),
            positions=[Position.from_dict(p) for p in data.get("positions", [])],
            trades=[Trade.from_dict(t) for t in data.get("trades", [])],
            last_updated=data.get("last_updated", ""),
        )


@dataclass(frozen=True)
class TradeRequest:
    """Order submitted to a broker or the paper ledger."""
    symbol: str
    side: Side
    quantity: float
    price: float
    reason: str = ""
    order_type: OrderType = OrderType.MARKET


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of an execute-trade call: success flag, message, fill."""
    success: bool
    message: str
    trade: Optional[Trade] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "trade": self.trade.to_dict() if self.trade else None,
        }


@dataclass
class ClosedTrade:
    """Completed backtest round trip for analytics."""
    symbol: str
    side: PositionSide
    quantity: float
    entry_price: float
    exit_price: float
    pnl: float
    pnl_pct: float
    entry_time: Any
    exit_time: Any
    exit_reason: str  # "Stop Loss" | "Take Profit" | "Signal Reversal" | "End of Backtest"
    fees: float = 0.0

    def to_dict(self) -> dict:
        d = asdict(self)
        d["side"] = self.side.value
        d["entry_time"] = str(self.entry_time)
        d["exit_time"] = str(self.exit_time)
        return d


@dataclass(frozen=True)
class EquityPoint:
    time: Any
    value: float


@dataclass(frozen=True)
class BacktestReport:
    """Write-once result of a single simulation run."""
    symbol: str
    initial_balance: float
    final_balance: float
    profit: float
    profit_percent: float
    trade_count: int
    win_rate: float
    max_drawdown: float
    profit_factor: float
    trades: List[ClosedTrade] = field(default_factory=list)
    equity_curve: List[EquityPoint] = field(default_factory=list)
    total_days: int = 0
    sharpe_ratio: float = 0.0

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "initial_balance": self.initial_balance,
            "final_balance": self.final_balance,
            "profit": self.profit,
            "profit_percent": self.profit_percent,
            "trade_count": self.trade_count,
            "win_rate": self.win_rate,
            "max_drawdown": self.max_drawdown,
            "profit_factor": self.profit_factor,
            "total_days": self.total_days,
            "sharpe_ratio": self.sharpe_ratio,
            "trades": [t.to_dict() for t in self.trades],
            "equity_curve": [{"time": str(p.time), "value": p.value} for p in self.equity_curve],
        }


def equity_values(curve: Iterable[EquityPoint]) -> List[float]:
    return [p.value for p in curve]

"""Abstract broker interface: portfolio snapshot and order execution."""

from __future__ import annotations
from abc import ABC, abstractmethod

from stock_engine.core.types import OrderType, Portfolio, Side, Trade


class BrokerProvider(ABC):
    """Anything that can hold a portfolio and fill orders (paper or live)."""

    name: str = "broker"

    @abstractmethod
    def get_portfolio(self) -> Portfolio:
        """Current marked portfolio snapshot."""
        pass

    @abstractmethod
    def execute_trade(
        self,
        symbol: str,
        side: Side,
        quantity: float,
        price: float,
        order_type: OrderType = OrderType.MARKET,
        reason: str = "",
    ) -> Trade:
        """Fill an order and return the Trade. Raise RiskRejected when refused."""
        pass

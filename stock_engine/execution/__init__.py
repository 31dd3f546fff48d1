"""Execution: broker contract, paper ledger and its persistence."""

from stock_engine.execution.base import BrokerProvider
from stock_engine.execution.paper import PaperLedger, PaperBroker
from stock_engine.execution.store import PortfolioStore, InMemoryPortfolioStore, JsonPortfolioStore

__all__ = [
    "BrokerProvider",
    "PaperLedger",
    "PaperBroker",
    "PortfolioStore",
    "InMemoryPortfolioStore",
    "JsonPortfolioStore",
]

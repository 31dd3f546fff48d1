"""Data: price history / quote contracts and the Yahoo chart provider."""

from stock_engine.data.base import PriceHistoryProvider, QuoteProvider
from stock_engine.data.yahoo import YahooHistoryProvider, parse_chart

__all__ = ["PriceHistoryProvider", "QuoteProvider", "YahooHistoryProvider", "parse_chart"]

"""Abstract market data interfaces: daily price history and latest quote."""

from __future__ import annotations
from abc import ABC, abstractmethod

import pandas as pd


class PriceHistoryProvider(ABC):
    @abstractmethod
    def get_history(self, symbol: str, period: str = "1y") -> pd.DataFrame:
        """Chronological OHLCV DataFrame: time, open, high, low, close, volume. Raises ProviderError."""
        pass


class QuoteProvider(ABC):
    @abstractmethod
    def get_quote(self, symbol: str) -> float:
        """Latest traded price. Raises ProviderError."""
        pass

"""
Portfolio persistence. The ledger commits a mutation only after save() returns.
"""

from __future__ import annotations
import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from stock_engine.core.types import Portfolio

logger = logging.getLogger("stock_engine.execution.store")


class PortfolioStore(ABC):
    @abstractmethod
    def load(self) -> Optional[Portfolio]:
        """Saved portfolio, or None when nothing is stored."""
        pass

    @abstractmethod
    def save(self, portfolio: Portfolio) -> None:
        pass

    @abstractmethod
    def delete(self) -> None:
        pass


class InMemoryPortfolioStore(PortfolioStore):
    """Keeps a private copy; used by tests and throwaway sessions."""

    def __init__(self, portfolio: Optional[Portfolio] = None):
        self._portfolio = copy.deepcopy(portfolio)
        self.saves = 0

    def load(self) -> Optional[Portfolio]:
        return copy.deepcopy(self._portfolio)

    def save(self, portfolio: Portfolio) -> None:
        self._portfolio = copy.deepcopy(portfolio)
        self.saves += 1

    def delete(self) -> None:
        self._portfolio = None


class JsonPortfolioStore(PortfolioStore):
    """Portfolio as a JSON file. Writes go to a temp file, then replace the target."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[Portfolio]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return Portfolio.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error("Failed to load portfolio from %s: %s", self.path, e)
            return None

    def save(self, portfolio: Portfolio) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(portfolio.to_dict(), f, indent=2)
        os.replace(tmp, self.path)

    def delete(self) -> None:
        if self.path.exists():
            self.path.unlink()

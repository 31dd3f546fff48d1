"""
Yahoo Finance chart endpoint: daily history with a 24h file cache, plus quotes.
"""

from __future__ import annotations
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd
import requests

from stock_engine.core.errors import ProviderError
from stock_engine.core.types import PRICE_COLUMNS
from stock_engine.data.base import PriceHistoryProvider, QuoteProvider
from stock_engine.utils.periods import chart_range

logger = logging.getLogger("stock_engine.data.yahoo")

CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
CACHE_TTL_SECONDS = 24 * 60 * 60


def _round(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return round(float(value), 2)


def parse_chart(payload: Dict[str, Any], symbol: str = "") -> List[Dict[str, Any]]:
    """Chart JSON to chronological bar dicts. Bars without a close are skipped."""
    try:
        result = payload["chart"]["result"][0]
    except (KeyError, IndexError, TypeError):
        error = (payload.get("chart") or {}).get("error") if isinstance(payload, dict) else None
        raise ProviderError(f"Yahoo chart: empty result for {symbol} ({error})", symbol)
    if result is None:
        raise ProviderError(f"Yahoo chart: empty result for {symbol}", symbol)

    timestamps = result.get("timestamp") or []
    try:
        quote = result["indicators"]["quote"][0]
    except (KeyError, IndexError, TypeError):
        raise ProviderError(f"Yahoo chart: no quote block for {symbol}", symbol)

    def column(name: str) -> list:
        values = quote.get(name) or []
        return list(values) + [None] * (len(timestamps) - len(values))

    opens, highs, lows, closes, volumes = (column(c) for c in ("open", "high", "low", "close", "volume"))
    bars = []
    for i, ts in enumerate(timestamps):
        close = closes[i]
        if close is None:
            continue
        bars.append({
            "time": pd.Timestamp(ts, unit="s", tz="UTC").strftime("%Y-%m-%d"),
            "open": _round(opens[i] if opens[i] is not None else close),
            "high": _round(highs[i] if highs[i] is not None else close),
            "low": _round(lows[i] if lows[i] is not None else close),
            "close": _round(close),
            "volume": float(volumes[i] or 0),
        })
    bars.sort(key=lambda b: b["time"])
    return bars


class YahooHistoryProvider(PriceHistoryProvider, QuoteProvider):
    """
    History comes from cache_dir/<SYMBOL>_<period>.json when younger than 24h;
    otherwise it is fetched and the cache rewritten. cache_dir=None disables caching.
    """

    def __init__(
        self,
        cache_dir: Optional[Union[str, Path]] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        cache_ttl: float = CACHE_TTL_SECONDS,
    ):
        self.cache_dir = Path(cache_dir) if cache_dir else None
        self.timeout = timeout
        self.session = session or requests.Session()
        self.cache_ttl = cache_ttl

    def _fetch(self, symbol: str, range_: str) -> Dict[str, Any]:
        url = CHART_URL.format(symbol=symbol)
        try:
            r = self.session.get(
                url,
                params={"range": range_, "interval": "1d"},
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
            )
            r.raise_for_status()
            return r.json()
        except requests.RequestException as e:
            raise ProviderError(f"Yahoo chart request failed for {symbol}: {e}", symbol) from e
        except ValueError as e:
            raise ProviderError(f"Yahoo chart returned invalid JSON for {symbol}: {e}", symbol) from e

    def _cache_file(self, symbol: str, period: str) -> Optional[Path]:
        if self.cache_dir is None:
            return None
        return self.cache_dir / f"{symbol}_{period}.json"

    def _read_cache(self, path: Optional[Path]) -> Optional[List[Dict[str, Any]]]:
        if path is None or not path.exists():
            return None
        if time.time() - path.stat().st_mtime >= self.cache_ttl:
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable history cache %s: %s", path, e)
            return None

    def _write_cache(self, path: Optional[Path], bars: List[Dict[str, Any]]) -> None:
        if path is None or not bars:
            return
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(bars, f, indent=2)
        except OSError as e:
            logger.warning("Could not write history cache %s: %s", path, e)

    def get_history(self, symbol: str, period: str = "1y") -> pd.DataFrame:
        symbol = symbol.strip().upper()
        try:
            range_ = chart_range(period)
        except ValueError as e:
            raise ProviderError(str(e), symbol) from e
        cache_file = self._cache_file(symbol, period)
        bars = self._read_cache(cache_file)
        if bars is None:
            bars = parse_chart(self._fetch(symbol, range_), symbol)
            self._write_cache(cache_file, bars)
            logger.info("Fetched %d bars for %s (%s)", len(bars), symbol, period)
        else:
            logger.debug("History cache hit for %s (%s)", symbol, period)
        return pd.DataFrame(bars, columns=PRICE_COLUMNS)

    def get_quote(self, symbol: str) -> float:
        symbol = symbol.strip().upper()
        payload = self._fetch(symbol, "5d")
        try:
            price = payload["chart"]["result"][0]["meta"]["regularMarketPrice"]
        except (KeyError, IndexError, TypeError):
            price = None
        if price is None:
            bars = parse_chart(payload, symbol)
            if not bars:
                raise ProviderError(f"No quote available for {symbol}", symbol)
            price = bars[-1]["close"]
        return float(price)

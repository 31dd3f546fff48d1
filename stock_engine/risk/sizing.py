"""
Position sizing and limit pricing. Pure functions of the trade setup.
Size scales with confidence; the limit price sits inside a 0.1% spread and
moves toward the market as confidence rises.
"""

from __future__ import annotations
import math

from stock_engine.core.types import RiskParameters, Sentiment, TradeSetup

MIN_QUANTITY = 1
MAX_QUANTITY = 10000
MIN_CONFIDENCE_SCALE = 0.5
BASE_SPREAD = 0.001


def calculate_position_size(setup: TradeSetup, params: RiskParameters) -> int:
    """
    quantity = floor(equity * max_position_pct * max(0.5, confidence/100) / price),
    clamped to [1, 10000].
    """
    if setup.price <= 0:
        raise ValueError(f"price must be positive, got {setup.price}")
    scale = max(MIN_CONFIDENCE_SCALE, setup.confidence / 100.0)
    budget = params.account_equity * params.max_position_pct * scale
    qty = math.floor(budget / setup.price)
    return int(max(MIN_QUANTITY, min(MAX_QUANTITY, qty)))


def aggressiveness(confidence: float) -> float:
    if confidence > 80:
        return 0.2
    if confidence < 60:
        return -0.2
    return 0.0


def calculate_limit_price(setup: TradeSetup) -> float:
    """Buy below / sell above the reference price. Rounded to cents."""
    offset = BASE_SPREAD * (1 - aggressiveness(setup.confidence))
    if setup.sentiment == Sentiment.BULLISH:
        price = setup.price * (1 - offset)
    else:
        price = setup.price * (1 + offset)
    return round(price, 2)

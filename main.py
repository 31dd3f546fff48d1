#!/usr/bin/env python3
"""
Stock Signal Engine CLI: analyze | backtest | optimize | trade | portfolio | reset
Usage:
  python main.py analyze AAPL [--period 1y] [--config config.yaml]
  python main.py backtest AAPL [--period 2y] [--capital 1000000]
  python main.py optimize AAPL [--period 2y]
  python main.py trade AAPL BUY 10 [--price 190.5] [--type LIMIT]
  python main.py portfolio
  python main.py reset
"""

from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

# Project root
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from stock_engine.analysis.engine import SignalEngine
from stock_engine.agents import ConsensusAggregator
from stock_engine.backtesting.engine import BacktestEngine
from stock_engine.backtesting.optimizer import find_optimal_threshold
from stock_engine.core.config import Config, load_config
from stock_engine.core.errors import ProviderError, RiskRejected
from stock_engine.core.logger import setup_logging
from stock_engine.core.types import OrderType, RiskParameters, Side, TradeRequest, TradeSetup
from stock_engine.data.yahoo import YahooHistoryProvider
from stock_engine.risk.sizing import calculate_limit_price, calculate_position_size

logger = logging.getLogger("stock_engine")


def _provider(config: Config) -> YahooHistoryProvider:
    return YahooHistoryProvider(cache_dir=ROOT / config.cache_dir, timeout=config.request_timeout)


def _state_path(config: Config) -> Path:
    return config.state_file if config.state_file.is_absolute() else ROOT / config.state_file


def run_analyze(config: Config, symbol: str, period: str) -> int:
    df = _provider(config).get_history(symbol, period)
    engine = SignalEngine(
        aggregator=ConsensusAggregator(hold_band=config.hold_band),
        min_bars=config.min_history_bars,
    )
    signal = engine.analyze(df)
    print(f"\n--- {symbol} ({len(df)} bars) ---")
    print(f"Signal: {signal.signal.value}  Sentiment: {signal.sentiment.value}  Confidence: {signal.confidence:.0f}%")
    print(f"Regime: {signal.regime.value}  Score: {signal.score:.2f}  Last close: {signal.price:.2f}")
    for tag in signal.signals:
        print(f"  - {tag}")
    if signal.confidence > 0 and signal.price > 0:
        setup = TradeSetup(symbol, signal.price, signal.confidence, signal.sentiment)
        params = RiskParameters(config.paper_initial_cash, config.risk_per_trade_pct, config.max_position_pct)
        print(f"Suggested size: {calculate_position_size(setup, params)}  Limit: {calculate_limit_price(setup):.2f}")
    return 0


def run_backtest(config: Config, symbol: str, period: str, capital: Optional[float]) -> int:
    df = _provider(config).get_history(symbol, period)
    report = BacktestEngine(config.backtest_config()).run(symbol, df, capital or config.backtest_initial_capital)
    print("\n--- Backtest Results ---")
    print(f"Bars: {report.total_days}  Trades: {report.trade_count}")
    print(f"Final balance: {report.final_balance:,.2f}  Profit: {report.profit:,.2f} ({report.profit_percent:.2f}%)")
    print(f"Win rate: {report.win_rate:.1f}%")
    print(f"Max drawdown: {report.max_drawdown * 100:.2f}%")
    print(f"Profit factor: {report.profit_factor:.2f}")
    print(f"Sharpe ratio: {report.sharpe_ratio:.2f}")
    for t in report.trades:
        print(
            f"  {t.side.value:<5} {t.quantity:>6} {t.entry_time} @ {t.entry_price:.2f} -> "
            f"{t.exit_time} @ {t.exit_price:.2f}  pnl={t.pnl:,.2f}  ({t.exit_reason})"
        )
    return 0


def run_optimize(config: Config, symbol: str, period: str, capital: Optional[float]) -> int:
    df = _provider(config).get_history(symbol, period)
    result = find_optimal_threshold(symbol, df, capital or config.backtest_initial_capital, config.backtest_config())
    print("\n--- Threshold Optimization ---")
    for threshold, report in result.results:
        print(f"  threshold={threshold:>5}  profit={report.profit:>14,.2f}  trades={report.trade_count}")
    print(f"Best threshold: {result.best_threshold} (profit {result.best_report.profit:,.2f})")
    return 0


def run_trade(config: Config, symbol: str, side: str, quantity: float, price: Optional[float], order_type: str) -> int:
    provider = _provider(config)
    ledger = config.paper_ledger(quote_provider=provider)
    if price is None:
        price = provider.get_quote(symbol)
    request = TradeRequest(
        symbol=symbol,
        side=Side(side),
        quantity=quantity,
        price=price,
        reason="CLI",
        order_type=OrderType(order_type),
    )
    result = ledger.execute_trade(request)
    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.success else 2


def run_portfolio(config: Config) -> int:
    ledger = config.paper_ledger(quote_provider=_provider(config))
    print(json.dumps(ledger.get_portfolio().to_dict(), indent=2))
    return 0


def run_reset(config: Config) -> int:
    ledger = config.paper_ledger()
    portfolio = ledger.reset_account()
    print(f"Paper account reset: cash={portfolio.cash:,.2f}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Stock Signal Engine CLI")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    parser.add_argument("--period", default=None, help="History period, e.g. 6m, 1y, 2y")
    sub = parser.add_subparsers(dest="mode", required=True)

    p = sub.add_parser("analyze", help="Consensus signal for the latest bar")
    p.add_argument("symbol")
    for name, help_text in (("backtest", "Simulate the signal over history"), ("optimize", "Grid-search buy threshold")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("symbol")
        p.add_argument("--capital", type=float, default=None, help="Initial balance")
    p = sub.add_parser("trade", help="Paper trade")
    p.add_argument("symbol")
    p.add_argument("side", type=str.upper, choices=["BUY", "SELL"])
    p.add_argument("quantity", type=float)
    p.add_argument("--price", type=float, default=None, help="Order price (default: latest quote)")
    p.add_argument("--type", dest="order_type", type=str.upper, choices=["MARKET", "LIMIT"], default="MARKET")
    sub.add_parser("portfolio", help="Show paper portfolio")
    sub.add_parser("reset", help="Reset paper account")
    args = parser.parse_args()

    config = load_config(args.config, ROOT)
    config.state_file = _state_path(config)
    setup_logging(config.log_level, ROOT / config.log_dir, config.log_file)
    period = args.period or config.period
    symbol = getattr(args, "symbol", config.symbol).upper()

    try:
        if args.mode == "analyze":
            return run_analyze(config, symbol, period)
        if args.mode == "backtest":
            return run_backtest(config, symbol, period, args.capital)
        if args.mode == "optimize":
            return run_optimize(config, symbol, period, args.capital)
        if args.mode == "trade":
            return run_trade(config, symbol, args.side, args.quantity, args.price, args.order_type)
        if args.mode == "portfolio":
            return run_portfolio(config)
        return run_reset(config)
    except (ProviderError, RiskRejected) as e:
        logger.error("%s failed: %s", args.mode, e)
        return 1


if __name__ == "__main__":
    exit(main())

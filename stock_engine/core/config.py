"""
Load configuration from config.yaml and .env. Environment variables win.
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv


def _env_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path(__file__).resolve().parents[2]
    return root / ".env"


def load_dotenv_if_exists(project_root: Optional[Path] = None) -> None:
    """Load .env from project root if present."""
    path = _env_path(project_root)
    if path.exists():
        load_dotenv(path)


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> "Config":
    """Load config.yaml and overlay with env. Returns Config."""
    load_dotenv_if_exists(project_root)
    root = project_root or Path(__file__).resolve().parents[2]
    path = config_path or root / "config.yaml"
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    def env(key: str, default: str = "") -> str:
        return os.getenv(key, default).strip()

    def env_bool(key: str, default: bool = False) -> bool:
        return os.getenv(key, str(default)).lower() in ("true", "1", "yes")

    def env_int(key: str, default: int = 0) -> int:
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    def env_float(key: str, default: float = 0.0) -> float:
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default

    data_cfg = data.get("data", {})
    analysis = data.get("analysis", {})
    backtest = data.get("backtest", {})
    paper = data.get("paper", {})
    logging_cfg = data.get("logging", {})

    return Config(
        # Data
        symbol=env("SYMBOL", data_cfg.get("symbol", "AAPL")).upper(),
        period=env("HISTORY_PERIOD", data_cfg.get("period", "1y")),
        cache_dir=env("HISTORY_CACHE_DIR", data_cfg.get("cache_dir", "data/history_cache")),
        request_timeout=env_float("REQUEST_TIMEOUT", data_cfg.get("request_timeout", 10.0)),
        # Analysis
        min_history_bars=env_int("MIN_HISTORY_BARS", analysis.get("min_history_bars", 50)),
        hold_band=env_float("HOLD_BAND", analysis.get("hold_band", 10.0)),
        # Backtest
        backtest_initial_capital=env_float("BACKTEST_INITIAL_CAPITAL", backtest.get("initial_capital", 1000000.0)),
        buy_threshold=env_float("BUY_THRESHOLD", backtest.get("buy_threshold", 50.0)),
        risk_per_trade_pct=env_float("RISK_PER_TRADE_PCT", backtest.get("risk_per_trade_pct", 0.02)),
        max_position_pct=env_float("MAX_POSITION_PCT", backtest.get("max_position_pct", 0.20)),
        stop_loss_pct=env_float("STOP_LOSS_PCT", backtest.get("stop_loss_pct", 0.05)),
        take_profit_pct=env_float("TAKE_PROFIT_PCT", backtest.get("take_profit_pct", 0.10)),
        warmup_bars=env_int("WARMUP_BARS", backtest.get("warmup_bars", 50)),
        backtest_slippage_bps=env_float("BACKTEST_SLIPPAGE_BPS", backtest.get("slippage_bps", 0.0)),
        backtest_fee_bps=env_float("BACKTEST_FEE_BPS", backtest.get("fee_bps", 0.0)),
        # Paper ledger
        paper_initial_cash=env_float("PAPER_INITIAL_CASH", paper.get("initial_cash", 1000000.0)),
        paper_slippage_bps=env_float("PAPER_SLIPPAGE_BPS", paper.get("slippage_bps", 5.0)),
        paper_fee_bps=env_float("PAPER_FEE_BPS", paper.get("fee_bps", 10.0)),
        allow_short=env_bool("ALLOW_SHORT", paper.get("allow_short", True)),
        cooldown_seconds=env_float("COOLDOWN_SECONDS", paper.get("cooldown_seconds", 60.0)),
        max_daily_loss_pct=env_float("MAX_DAILY_LOSS_PCT", paper.get("max_daily_loss_pct", 0.05)),
        paper_max_position_pct=env_float("PAPER_MAX_POSITION_PCT", paper.get("max_position_pct", 0.20)),
        max_trades=env_int("MAX_TRADES", paper.get("max_trades", 50)),
        state_file=Path(env("PAPER_STATE_FILE", paper.get("state_file", "data/paper_portfolio.json"))),
        # Logging
        log_level=env("LOG_LEVEL", logging_cfg.get("level", "INFO")),
        log_dir=Path(logging_cfg.get("log_dir", "logs")),
        log_file=logging_cfg.get("log_file", "stock_engine.log"),
    )


class Config:
    """Unified configuration. Immutable after load."""

    __slots__ = (
        "symbol", "period", "cache_dir", "request_timeout",
        "min_history_bars", "hold_band",
        "backtest_initial_capital", "buy_threshold", "risk_per_trade_pct", "max_position_pct",
        "stop_loss_pct", "take_profit_pct", "warmup_bars", "backtest_slippage_bps", "backtest_fee_bps",
        "paper_initial_cash", "paper_slippage_bps", "paper_fee_bps", "allow_short", "cooldown_seconds",
        "max_daily_loss_pct", "paper_max_position_pct", "max_trades", "state_file",
        "log_level", "log_dir", "log_file",
    )

    def __init__(
        self,
        symbol: str = "AAPL",
        period: str = "1y",
        cache_dir: str = "data/history_cache",
        request_timeout: float = 10.0,
        min_history_bars: int = 50,
        hold_band: float = 10.0,
        backtest_initial_capital: float = 1000000.0,
        buy_threshold: float = 50.0,
        risk_per_trade_pct: float = 0.02,
        max_position_pct: float = 0.20,
        stop_loss_pct: float = 0.05,
        take_profit_pct: float = 0.10,
        warmup_bars: int = 50,
        backtest_slippage_bps: float = 0.0,
        backtest_fee_bps: float = 0.0,
        paper_initial_cash: float = 1000000.0,
        paper_slippage_bps: float = 5.0,
        paper_fee_bps: float = 10.0,
        allow_short: bool = True,
        cooldown_seconds: float = 60.0,
        max_daily_loss_pct: float = 0.05,
        paper_max_position_pct: float = 0.20,
        max_trades: int = 50,
        state_file: Optional[Path] = None,
        log_level: str = "INFO",
        log_dir: Optional[Path] = None,
        log_file: str = "stock_engine.log",
    ):
        self.symbol = symbol
        self.period = period
        self.cache_dir = cache_dir
        self.request_timeout = request_timeout
        self.min_history_bars = min_history_bars
        self.hold_band = hold_band
        self.backtest_initial_capital = backtest_initial_capital
        self.buy_threshold = buy_threshold
        self.risk_per_trade_pct = risk_per_trade_pct
        self.max_position_pct = max_position_pct
        self.stop_loss_pct = stop_loss_pct
        self.take_profit_pct = take_profit_pct
        self.warmup_bars = warmup_bars
        self.backtest_slippage_bps = backtest_slippage_bps
        self.backtest_fee_bps = backtest_fee_bps
        self.paper_initial_cash = paper_initial_cash
        self.paper_slippage_bps = paper_slippage_bps
        self.paper_fee_bps = paper_fee_bps
        self.allow_short = allow_short
        self.cooldown_seconds = cooldown_seconds
        self.max_daily_loss_pct = max_daily_loss_pct
        self.paper_max_position_pct = paper_max_position_pct
        self.max_trades = max_trades
        self.state_file = Path(state_file) if state_file else Path("data/paper_portfolio.json")
        self.log_level = log_level
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_file = log_file

    def backtest_config(self):
        from stock_engine.backtesting.engine import BacktestConfig

        return BacktestConfig(
            buy_threshold=self.buy_threshold,
            risk_per_trade_pct=self.risk_per_trade_pct,
            max_position_pct=self.max_position_pct,
            stop_loss_pct=self.stop_loss_pct,
            take_profit_pct=self.take_profit_pct,
            warmup_bars=self.warmup_bars,
            slippage_bps=self.backtest_slippage_bps,
            fee_bps=self.backtest_fee_bps,
        )

    def risk_gate(self):
        from stock_engine.risk.gate import RiskGate

        return RiskGate(
            max_daily_loss_pct=self.max_daily_loss_pct,
            max_position_pct=self.paper_max_position_pct,
            cooldown_seconds=self.cooldown_seconds,
            allow_short=self.allow_short,
        )

    def paper_ledger(self, quote_provider=None):
        from stock_engine.execution.paper import PaperLedger
        from stock_engine.execution.store import JsonPortfolioStore

        return PaperLedger(
            initial_cash=self.paper_initial_cash,
            slippage_bps=self.paper_slippage_bps,
            fee_bps=self.paper_fee_bps,
            risk_gate=self.risk_gate(),
            store=JsonPortfolioStore(self.state_file),
            quote_provider=quote_provider,
            max_trades=self.max_trades,
        )

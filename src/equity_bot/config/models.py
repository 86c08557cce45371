"""Configuration models for reproducible runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from equity_bot.backtest.models import BacktestConfig
from equity_bot.risk.models import RiskConfig
from equity_bot.simulator.models import MonteCarloConfig


@dataclass(frozen=True)
class MonitoringConfig:
    audit_log_path: str = "runtime/audit.log"
    trade_history_path: Optional[str] = None


@dataclass(frozen=True)
class DataConfig:
    candles_dir: str = "data/candles"
    lookback_days: int = 365
    max_workers: int = 8


@dataclass(frozen=True)
class BotConfig:
    name: str
    version: str
    risk: RiskConfig
    backtest: BacktestConfig
    monte_carlo: MonteCarloConfig = field(default_factory=MonteCarloConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    data: DataConfig = field(default_factory=DataConfig)

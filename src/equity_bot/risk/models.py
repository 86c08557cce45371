"""Data models for pre-trade risk checks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Mapping, Optional


class Side(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class RiskConfig:
    max_positions: int = 5
    max_position_size_pct: float = 0.15
    max_risk_per_trade_pct: float = 0.02
    max_sector_concentration: int = 3
    max_sector_value_pct: Optional[float] = 0.35
    daily_loss_limit_pct: float = 0.05
    max_drawdown_alert_pct: float = 0.10
    streak_reduction_threshold: int = 3
    streak_reduction_factor: float = 0.5
    streak_lookback: int = 100


@dataclass(frozen=True)
class PortfolioState:
    cash_available: float
    portfolio_value: float
    open_positions: int
    today_pnl: float = 0.0
    today_pnl_pct: float = 0.0
    sector_exposure: Mapping[str, int] = field(default_factory=dict)
    sector_exposure_value: Mapping[str, float] = field(default_factory=dict)
    peak_value: float = 0.0


@dataclass(frozen=True)
class TradeProposal:
    symbol: str
    side: Side
    shares: float
    price: float
    stop_loss_pct: float
    position_size_pct: float
    sector: Optional[str] = None

    @property
    def position_value(self) -> float:
        return self.shares * self.price


@dataclass(frozen=True)
class ValidationResult:
    allowed: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class ClosedTrade:
    pnl: Optional[float]
    exit_price: Optional[float]
    entry_price: Optional[float]
    symbol: Optional[str] = None
    exit_time: Optional[datetime] = None

    def is_loss(self) -> bool:
        if self.pnl is not None:
            return self.pnl < 0
        if self.exit_price is None or self.entry_price is None:
            return True
        return self.exit_price < self.entry_price


@dataclass(frozen=True)
class HistoryRead:
    trades: tuple[ClosedTrade, ...] = ()
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

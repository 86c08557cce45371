"""Backtest data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Optional, Sequence


class ExitReason:
    STOPLOSS = "stoploss"
    TAKEPROFIT = "takeprofit"
    TRAILING_STOP = "trailing_stop"
    ROI_TABLE = "roi_table"
    EXIT_CONDITION = "exit_condition"
    END_OF_DATA = "end_of_data"


@dataclass(frozen=True)
class Candle:
    date: date
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


@dataclass(frozen=True)
class BacktestConfig:
    symbols: Sequence[str]
    start_date: date
    end_date: date
    initial_capital: float = 10000.0
    max_positions: int = 5
    max_position_size_pct: float = 0.15
    stop_loss_pct: float = 0.05
    take_profit_pct: Optional[float] = None
    roi_table: Optional[Mapping[float, float]] = None
    trailing_stop: bool = False
    commission: float = 0.0
    entry_threshold: float = 0.6
    min_history_candles: int = 50
    exit_conditions: Sequence[str] = ()


def raise_trailing_stop(existing: Optional[float], high_water_mark: float, stop_loss_pct: float) -> float:
    """Trailing stop for a new high-water mark; never lower than ``existing``."""
    candidate = high_water_mark * (1.0 - stop_loss_pct)
    if existing is None:
        return candidate
    return max(existing, candidate)


@dataclass
class BacktestPosition:
    symbol: str
    shares: int
    entry_price: float
    entry_time: date
    stop_loss: float
    high_water_mark: float
    technical_score: float
    trailing_stop: Optional[float] = None
    take_profit: Optional[float] = None

    def update_trailing_stop(self, high: float, stop_loss_pct: float) -> None:
        if high <= self.high_water_mark:
            return
        self.high_water_mark = high
        self.trailing_stop = raise_trailing_stop(self.trailing_stop, high, stop_loss_pct)
        self.stop_loss = max(self.stop_loss, self.trailing_stop)


@dataclass(frozen=True)
class BacktestTrade:
    """A closed round trip; ``pnl`` is net of the commission on both entry and exit."""

    symbol: str
    entry_price: float
    exit_price: float
    shares: int
    entry_time: date
    exit_time: date
    pnl: float
    pnl_pct: float
    exit_reason: str
    hold_minutes: int
    technical_score: float
    side: str = "SELL"


@dataclass(frozen=True)
class EquityPoint:
    date: date
    equity: float


@dataclass(frozen=True)
class EntrySignal:
    symbol: str
    score: float
    price: float


@dataclass(frozen=True)
class PendingEntry:
    signal: EntrySignal
    fill_date: date


@dataclass(frozen=True)
class TradeSummary:
    symbol: str
    pnl_pct: float


@dataclass(frozen=True)
class BacktestMetrics:
    total_trades: int
    win_count: int
    loss_count: int
    win_rate: float
    total_pnl: float
    total_pnl_pct: float
    avg_win: Optional[float]
    avg_loss: Optional[float]
    max_drawdown: float
    max_drawdown_pct: float
    current_drawdown: float
    sharpe_ratio: Optional[float]
    sortino_ratio: Optional[float]
    calmar_ratio: Optional[float]
    sqn: Optional[float]
    expectancy: Optional[float]
    profit_factor: Optional[float]
    avg_hold_minutes: float
    best_trade: Optional[TradeSummary]
    worst_trade: Optional[TradeSummary]
    final_equity: float
    return_pct: float


@dataclass(frozen=True)
class BacktestResult:
    config: BacktestConfig
    trades: list[BacktestTrade]
    metrics: BacktestMetrics
    equity_curve: list[EquityPoint]
    daily_returns: list[float] = field(default_factory=list)

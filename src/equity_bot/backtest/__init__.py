"""Historical backtesting of scoring strategies."""

from equity_bot.backtest.data_loader import CandleLoader, CsvCandleLoader, InMemoryCandleLoader, common_dates
from equity_bot.backtest.engine import BacktestEngine, IndicatorFn, ScoreFn
from equity_bot.backtest.metrics import (
    calculate_max_drawdown,
    compute_calmar,
    compute_daily_returns,
    compute_expectancy,
    compute_metrics,
    compute_profit_factor,
    compute_sharpe,
    compute_sortino,
    compute_sqn,
)
from equity_bot.backtest.models import (
    BacktestConfig,
    BacktestMetrics,
    BacktestPosition,
    BacktestResult,
    BacktestTrade,
    Candle,
    EntrySignal,
    EquityPoint,
    ExitReason,
    PendingEntry,
    TradeSummary,
    raise_trailing_stop,
)
from equity_bot.backtest.reporter import (
    format_equity_curve,
    format_hold_time,
    generate_summary,
    generate_symbol_breakdown,
    result_to_dict,
)
from equity_bot.backtest.roi import get_roi_threshold, parse_roi_table, should_exit_by_roi

__all__ = [
    "BacktestConfig",
    "BacktestEngine",
    "BacktestMetrics",
    "BacktestPosition",
    "BacktestResult",
    "BacktestTrade",
    "Candle",
    "CandleLoader",
    "CsvCandleLoader",
    "EntrySignal",
    "EquityPoint",
    "ExitReason",
    "InMemoryCandleLoader",
    "IndicatorFn",
    "PendingEntry",
    "ScoreFn",
    "TradeSummary",
    "calculate_max_drawdown",
    "common_dates",
    "compute_calmar",
    "compute_daily_returns",
    "compute_expectancy",
    "compute_metrics",
    "compute_profit_factor",
    "compute_sharpe",
    "compute_sortino",
    "compute_sqn",
    "format_equity_curve",
    "format_hold_time",
    "generate_summary",
    "generate_symbol_breakdown",
    "get_roi_threshold",
    "parse_roi_table",
    "raise_trailing_stop",
    "result_to_dict",
    "should_exit_by_roi",
]

"""Text and plain-data renderings of backtest results."""

from __future__ import annotations

import math
from dataclasses import asdict
from typing import Any, Optional

from equity_bot.backtest.models import BacktestResult
from equity_bot.backtest.roi import parse_roi_table


def _currency(value: float) -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def _percent(value: float) -> str:
    return f"{value * 100:.2f}%"


def _ratio(value: Optional[float]) -> str:
    if value is None:
        return "N/A"
    if math.isinf(value):
        return "inf"
    return f"{value}"


def format_hold_time(minutes: float) -> str:
    if minutes < 60:
        return f"{round(minutes)}m"
    hours = int(minutes // 60)
    if hours < 24:
        return f"{hours}h {round(minutes % 60)}m"
    days = hours // 24
    return f"{days}d {hours % 24}h"


def generate_summary(result: BacktestResult) -> str:
    metrics = result.metrics
    config = result.config
    lines = [
        "=== Backtest Results ===",
        f"Period: {config.start_date.isoformat()} to {config.end_date.isoformat()}",
        f"Symbols: {', '.join(config.symbols)}",
        f"Initial Capital: {_currency(config.initial_capital)}",
        "",
        "--- Performance ---",
        f"Final Equity: {_currency(metrics.final_equity)}",
        f"Return: {_percent(metrics.return_pct)}",
        f"Total P&L: {_currency(metrics.total_pnl)}",
        "",
        "--- Trade Statistics ---",
        f"Total Trades: {metrics.total_trades}",
        f"Win Rate: {_percent(metrics.win_rate)}",
        f"Wins: {metrics.win_count} | Losses: {metrics.loss_count}",
        f"Avg Win: {_currency(metrics.avg_win) if metrics.avg_win is not None else 'N/A'}",
        f"Avg Loss: {_currency(metrics.avg_loss) if metrics.avg_loss is not None else 'N/A'}",
        f"Avg Hold: {format_hold_time(metrics.avg_hold_minutes) if metrics.avg_hold_minutes > 0 else 'N/A'}",
        "",
        "--- Risk Metrics ---",
        f"Max Drawdown: {_percent(metrics.max_drawdown_pct)}",
        f"Sharpe Ratio: {_ratio(metrics.sharpe_ratio)}",
        f"Sortino Ratio: {_ratio(metrics.sortino_ratio)}",
        f"Calmar Ratio: {_ratio(metrics.calmar_ratio)}",
        f"SQN: {_ratio(metrics.sqn)}",
        f"Profit Factor: {_ratio(metrics.profit_factor)}",
        f"Expectancy: {_currency(metrics.expectancy) if metrics.expectancy is not None else 'N/A'}",
    ]
    if metrics.best_trade:
        lines.append("")
        lines.append(f"Best Trade: {metrics.best_trade.symbol} ({_percent(metrics.best_trade.pnl_pct)})")
    if metrics.worst_trade:
        lines.append(f"Worst Trade: {metrics.worst_trade.symbol} ({_percent(metrics.worst_trade.pnl_pct)})")
    return "\n".join(lines)


def generate_symbol_breakdown(result: BacktestResult) -> str:
    if not result.trades:
        return "No trades to analyze."

    by_symbol: dict[str, dict[str, float]] = {}
    for trade in result.trades:
        stats = by_symbol.setdefault(trade.symbol, {"trades": 0, "wins": 0, "pnl": 0.0, "pnl_pct": 0.0})
        stats["trades"] += 1
        if trade.pnl > 0:
            stats["wins"] += 1
        stats["pnl"] += trade.pnl
        stats["pnl_pct"] += trade.pnl_pct

    lines = ["=== Per-Symbol Breakdown ===", ""]
    for symbol, stats in sorted(by_symbol.items(), key=lambda item: item[1]["pnl"], reverse=True):
        count = stats["trades"]
        lines.append(
            f"{symbol}: {int(count)} trades, WR {_percent(stats['wins'] / count)}, "
            f"P&L {_currency(stats['pnl'])}, Avg {_percent(stats['pnl_pct'] / count)}"
        )
    return "\n".join(lines)


def format_equity_curve(result: BacktestResult) -> dict[str, Any]:
    return {
        "dates": [point.date.isoformat() for point in result.equity_curve],
        "values": [round(point.equity, 2) for point in result.equity_curve],
        "initial_capital": result.config.initial_capital,
    }


def _json_number(value: Any) -> Any:
    if isinstance(value, float) and math.isinf(value):
        return "inf" if value > 0 else "-inf"
    return value


def result_to_dict(result: BacktestResult) -> dict[str, Any]:
    """JSON-safe view of a result: dates as ISO strings, infinity as ``"inf"``."""
    config = result.config
    metrics = {key: _json_number(value) for key, value in asdict(result.metrics).items()}
    return {
        "config": {
            "symbols": list(config.symbols),
            "start_date": config.start_date.isoformat(),
            "end_date": config.end_date.isoformat(),
            "initial_capital": config.initial_capital,
            "max_positions": config.max_positions,
            "max_position_size_pct": config.max_position_size_pct,
            "stop_loss_pct": config.stop_loss_pct,
            "take_profit_pct": config.take_profit_pct,
            "trailing_stop": config.trailing_stop,
            "commission": config.commission,
            "entry_threshold": config.entry_threshold,
            "min_history_candles": config.min_history_candles,
            "roi_table": (
                {str(minutes): value for minutes, value in parse_roi_table(config.roi_table).items()}
                if config.roi_table
                else None
            ),
            "exit_conditions": list(config.exit_conditions),
        },
        "metrics": metrics,
        "trades": [
            {
                **asdict(trade),
                "entry_time": trade.entry_time.isoformat(),
                "exit_time": trade.exit_time.isoformat(),
            }
            for trade in result.trades
        ],
        "equity_curve": format_equity_curve(result),
        "daily_returns": list(result.daily_returns),
    }

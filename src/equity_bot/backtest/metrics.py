"""Performance metrics for backtest results."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from equity_bot.backtest.models import BacktestMetrics, BacktestTrade, EquityPoint, TradeSummary

TRADING_DAYS_PER_YEAR = 252
RISK_FREE_RATE = 0.05
MIN_DAILY_RETURNS = 5


@dataclass(frozen=True)
class DrawdownStats:
    max_drawdown: float
    max_drawdown_pct: float
    current_drawdown: float


@dataclass(frozen=True)
class ExpectancyStats:
    expectancy: Optional[float]
    avg_win: Optional[float]
    avg_loss: Optional[float]


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def compute_daily_returns(equity_curve: Sequence[EquityPoint]) -> list[float]:
    returns = []
    for previous, current in zip(equity_curve, equity_curve[1:]):
        if previous.equity > 0:
            returns.append((current.equity - previous.equity) / previous.equity)
    return returns


def _excess_returns(daily_returns: Sequence[float]) -> list[float]:
    risk_free_daily = RISK_FREE_RATE / TRADING_DAYS_PER_YEAR
    return [value - risk_free_daily for value in daily_returns]


def compute_sharpe(daily_returns: Sequence[float]) -> Optional[float]:
    if len(daily_returns) < MIN_DAILY_RETURNS:
        return None
    excess = _excess_returns(daily_returns)
    mean_excess = _mean(excess)
    variance = sum((value - mean_excess) ** 2 for value in excess) / len(excess)
    deviation = math.sqrt(variance)
    if deviation <= 0:
        return None
    return round(mean_excess / deviation * math.sqrt(TRADING_DAYS_PER_YEAR), 2)


def compute_sortino(daily_returns: Sequence[float]) -> Optional[float]:
    if len(daily_returns) < MIN_DAILY_RETURNS:
        return None
    excess = _excess_returns(daily_returns)
    downside = math.sqrt(sum(min(0.0, value) ** 2 for value in excess) / len(excess))
    if downside <= 0:
        return None
    return round(_mean(excess) / downside * math.sqrt(TRADING_DAYS_PER_YEAR), 2)


def compute_calmar(daily_returns: Sequence[float], max_drawdown_pct: float) -> Optional[float]:
    if len(daily_returns) < MIN_DAILY_RETURNS or max_drawdown_pct <= 0:
        return None
    annual_return = _mean(daily_returns) * TRADING_DAYS_PER_YEAR
    return round(annual_return / max_drawdown_pct, 2)


def compute_sqn(trade_returns: Sequence[float]) -> Optional[float]:
    count = len(trade_returns)
    if count < 2:
        return None
    mean = _mean(trade_returns)
    deviation = math.sqrt(sum((value - mean) ** 2 for value in trade_returns) / (count - 1))
    if deviation <= 0:
        return None
    return round(math.sqrt(count) * mean / deviation, 2)


def compute_expectancy(pnls: Sequence[float]) -> ExpectancyStats:
    if not pnls:
        return ExpectancyStats(None, None, None)
    wins = [pnl for pnl in pnls if pnl > 0]
    losses = [pnl for pnl in pnls if pnl <= 0]
    avg_win = round(_mean(wins), 2) if wins else None
    avg_loss = round(_mean(losses), 2) if losses else None
    win_rate = len(wins) / len(pnls)
    expectancy = win_rate * (_mean(wins) if wins else 0.0) + (1 - win_rate) * (_mean(losses) if losses else 0.0)
    return ExpectancyStats(round(expectancy, 2), avg_win, avg_loss)


def compute_profit_factor(pnls: Sequence[float]) -> float:
    gross_profit = sum(pnl for pnl in pnls if pnl > 0)
    gross_loss = -sum(pnl for pnl in pnls if pnl < 0)
    if gross_loss == 0:
        return math.inf if gross_profit > 0 else 0.0
    return round(gross_profit / gross_loss, 2)


def calculate_max_drawdown(pnls: Sequence[float], initial_capital: float) -> DrawdownStats:
    """Drawdown of the cumulative closed-trade P&L on top of ``initial_capital``."""
    equity = initial_capital
    peak = initial_capital
    max_drawdown = 0.0
    max_drawdown_pct = 0.0
    for pnl in pnls:
        equity += pnl
        peak = max(peak, equity)
        drawdown = peak - equity
        if drawdown > max_drawdown:
            max_drawdown = drawdown
        if peak > 0 and drawdown / peak > max_drawdown_pct:
            max_drawdown_pct = drawdown / peak
    return DrawdownStats(
        max_drawdown=round(max_drawdown, 2),
        max_drawdown_pct=round(max_drawdown_pct, 4),
        current_drawdown=round(peak - equity, 2),
    )


def empty_metrics(final_equity: float, initial_capital: float) -> BacktestMetrics:
    return BacktestMetrics(
        total_trades=0,
        win_count=0,
        loss_count=0,
        win_rate=0.0,
        total_pnl=0.0,
        total_pnl_pct=0.0,
        avg_win=None,
        avg_loss=None,
        max_drawdown=0.0,
        max_drawdown_pct=0.0,
        current_drawdown=0.0,
        sharpe_ratio=None,
        sortino_ratio=None,
        calmar_ratio=None,
        sqn=None,
        expectancy=None,
        profit_factor=None,
        avg_hold_minutes=0.0,
        best_trade=None,
        worst_trade=None,
        final_equity=round(final_equity, 2),
        return_pct=round((final_equity - initial_capital) / initial_capital, 4) if initial_capital else 0.0,
    )


def compute_metrics(
    trades: Sequence[BacktestTrade],
    equity_curve: Sequence[EquityPoint],
    initial_capital: float,
    final_equity: float,
) -> BacktestMetrics:
    if not trades:
        return empty_metrics(final_equity, initial_capital)

    pnls = [trade.pnl for trade in trades]
    wins = [pnl for pnl in pnls if pnl > 0]
    total_pnl = sum(pnls)
    daily_returns = compute_daily_returns(equity_curve)
    drawdown = calculate_max_drawdown(pnls, initial_capital)
    expectancy = compute_expectancy(pnls)

    ranked = sorted(trades, key=lambda trade: trade.pnl_pct)
    worst, best = ranked[0], ranked[-1]

    return BacktestMetrics(
        total_trades=len(trades),
        win_count=len(wins),
        loss_count=len(trades) - len(wins),
        win_rate=round(len(wins) / len(trades), 4),
        total_pnl=round(total_pnl, 2),
        total_pnl_pct=round(total_pnl / initial_capital, 4),
        avg_win=expectancy.avg_win,
        avg_loss=expectancy.avg_loss,
        max_drawdown=drawdown.max_drawdown,
        max_drawdown_pct=drawdown.max_drawdown_pct,
        current_drawdown=drawdown.current_drawdown,
        sharpe_ratio=compute_sharpe(daily_returns),
        sortino_ratio=compute_sortino(daily_returns),
        calmar_ratio=compute_calmar(daily_returns, drawdown.max_drawdown_pct),
        sqn=compute_sqn([trade.pnl_pct for trade in trades]),
        expectancy=expectancy.expectancy,
        profit_factor=compute_profit_factor(pnls),
        avg_hold_minutes=round(sum(trade.hold_minutes for trade in trades) / len(trades)),
        best_trade=TradeSummary(best.symbol, best.pnl_pct),
        worst_trade=TradeSummary(worst.symbol, worst.pnl_pct),
        final_equity=round(final_equity, 2),
        return_pct=round((final_equity - initial_capital) / initial_capital, 4),
    )

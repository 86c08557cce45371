"""Default technical scoring used to drive backtests."""

from equity_bot.strategy.indicators import CandleSeries, Macd, Stochastic
from equity_bot.strategy.scorer import indicator_snapshot, score_technicals

__all__ = [
    "CandleSeries",
    "Macd",
    "Stochastic",
    "indicator_snapshot",
    "score_technicals",
]

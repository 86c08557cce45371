"""Losing-streak position damping."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Protocol, Sequence

from equity_bot.risk.models import ClosedTrade, HistoryRead

logger = logging.getLogger(__name__)


class ClosedTradeReader(Protocol):
    def recent_closed_trades(self, limit: int) -> Sequence[ClosedTrade]:
        """Closed trades ordered most recent exit first."""


def read_history(reader: Optional[ClosedTradeReader], limit: int) -> HistoryRead:
    if reader is None:
        return HistoryRead(error="No trade history configured")
    try:
        trades = tuple(reader.recent_closed_trades(limit))
    except Exception as exc:
        logger.error("Failed to read closed trade history: %s", exc)
        return HistoryRead(error=str(exc) or exc.__class__.__name__)
    return HistoryRead(trades=trades)


def count_losing_streak(trades: Iterable[ClosedTrade]) -> int:
    losses = 0
    for trade in trades:
        if not trade.is_loss():
            break
        losses += 1
    return losses


def damping_enabled(threshold: int, factor: float) -> bool:
    return threshold > 0 and 0 < factor < 1


def streak_multiplier(consecutive_losses: int, threshold: int, factor: float) -> float:
    if not damping_enabled(threshold, factor):
        return 1.0
    if consecutive_losses < threshold:
        return 1.0
    return factor ** (consecutive_losses // threshold)

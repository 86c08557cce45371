"""Pre-trade risk checks and circuit breakers."""

from equity_bot.risk.guard import RiskGuard
from equity_bot.risk.models import (
    ClosedTrade,
    HistoryRead,
    PortfolioState,
    RiskConfig,
    Side,
    TradeProposal,
    ValidationResult,
)
from equity_bot.risk.streak import (
    ClosedTradeReader,
    count_losing_streak,
    damping_enabled,
    read_history,
    streak_multiplier,
)

__all__ = [
    "ClosedTrade",
    "ClosedTradeReader",
    "HistoryRead",
    "PortfolioState",
    "RiskConfig",
    "RiskGuard",
    "Side",
    "TradeProposal",
    "ValidationResult",
    "count_losing_streak",
    "damping_enabled",
    "read_history",
    "streak_multiplier",
]

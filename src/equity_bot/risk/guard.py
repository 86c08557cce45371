"""Risk guard that approves or rejects proposed trades."""

from __future__ import annotations

import logging
from typing import Optional

from equity_bot.monitoring.audit import AuditLog
from equity_bot.monitoring.monitor import Monitor
from equity_bot.risk.models import PortfolioState, RiskConfig, Side, TradeProposal, ValidationResult
from equity_bot.risk.streak import (
    ClosedTradeReader,
    count_losing_streak,
    damping_enabled,
    read_history,
    streak_multiplier,
)

logger = logging.getLogger(__name__)


class RiskGuard:
    """Stateless checks of a trade proposal against portfolio limits.

    Exits are never blocked: SELL proposals are always allowed.
    """

    def __init__(
        self,
        config: RiskConfig,
        trade_history: Optional[ClosedTradeReader] = None,
        audit_log: Optional[AuditLog] = None,
        monitor: Optional[Monitor] = None,
    ) -> None:
        self.config = config
        self._trade_history = trade_history
        self._audit_log = audit_log
        self._monitor = monitor

    def _log(self, event: str, payload: dict) -> None:
        if self._audit_log is None:
            return
        self._audit_log.log(event, payload)

    def _reject(self, proposal: TradeProposal, reason: str) -> ValidationResult:
        logger.warning("Trade rejected for %s: %s", proposal.symbol, reason)
        self._log(
            "validate_trade",
            {
                "allowed": False,
                "reason": reason,
                "symbol": proposal.symbol,
                "side": proposal.side.value,
                "shares": proposal.shares,
                "price": proposal.price,
            },
        )
        return ValidationResult(False, reason)

    def validate_trade(self, proposal: TradeProposal, portfolio: PortfolioState) -> ValidationResult:
        if proposal.side == Side.SELL:
            logger.debug("Exit for %s allowed without limit checks", proposal.symbol)
            return ValidationResult(True)

        config = self.config
        if portfolio.open_positions >= config.max_positions:
            return self._reject(
                proposal,
                f"Max positions reached: {portfolio.open_positions}/{config.max_positions}",
            )

        position_value = proposal.position_value
        max_allowed = config.max_position_size_pct * portfolio.portfolio_value
        if position_value > max_allowed:
            return self._reject(
                proposal,
                f"Position size ${position_value:.2f} exceeds max ${max_allowed:.2f} "
                f"({config.max_position_size_pct * 100:.1f}% of portfolio)",
            )

        trade_risk = position_value * proposal.stop_loss_pct
        max_risk = config.max_risk_per_trade_pct * portfolio.portfolio_value
        if trade_risk > max_risk:
            return self._reject(
                proposal,
                f"Trade risk ${trade_risk:.2f} exceeds max ${max_risk:.2f} "
                f"({config.max_risk_per_trade_pct * 100:.1f}% of portfolio)",
            )

        if proposal.sector:
            sector_count = portfolio.sector_exposure.get(proposal.sector, 0)
            if sector_count >= config.max_sector_concentration:
                return self._reject(
                    proposal,
                    f"Sector '{proposal.sector}' already has "
                    f"{sector_count}/{config.max_sector_concentration} positions",
                )

            if config.max_sector_value_pct is not None:
                sector_value_pct = portfolio.sector_exposure_value.get(proposal.sector, 0.0)
                if sector_value_pct >= config.max_sector_value_pct:
                    return self._reject(
                        proposal,
                        f"Sector '{proposal.sector}' value {sector_value_pct * 100:.1f}% "
                        f"exceeds max {config.max_sector_value_pct * 100:.1f}%",
                    )

        if position_value > portfolio.cash_available:
            return self._reject(
                proposal,
                f"Insufficient cash: need ${position_value:.2f}, have ${portfolio.cash_available:.2f}",
            )

        logger.debug("Trade validated for %s", proposal.symbol)
        self._log(
            "validate_trade",
            {"allowed": True, "symbol": proposal.symbol, "side": proposal.side.value},
        )
        return ValidationResult(True)

    def check_daily_loss(self, portfolio: PortfolioState) -> bool:
        limit = self.config.daily_loss_limit_pct
        breached = portfolio.today_pnl_pct < -limit
        if breached:
            logger.warning(
                "Daily loss limit breached: %.4f < -%.4f, trading should pause",
                portfolio.today_pnl_pct,
                limit,
            )
            self._log("daily_loss", {"today_pnl_pct": portfolio.today_pnl_pct, "limit": limit})
            if self._monitor is not None:
                self._monitor.daily_loss_breach(portfolio.today_pnl_pct, limit)
        return breached

    def check_drawdown(self, portfolio: PortfolioState) -> bool:
        if portfolio.peak_value <= 0:
            return False
        limit = self.config.max_drawdown_alert_pct
        drawdown = (portfolio.peak_value - portfolio.portfolio_value) / portfolio.peak_value
        breached = drawdown > limit
        if breached:
            logger.warning(
                "Drawdown alert: %.2f%% from peak %.2f exceeds %.1f%%",
                drawdown * 100,
                portfolio.peak_value,
                limit * 100,
            )
            self._log(
                "drawdown",
                {
                    "drawdown_pct": drawdown,
                    "limit": limit,
                    "peak_value": portfolio.peak_value,
                    "portfolio_value": portfolio.portfolio_value,
                },
            )
            if self._monitor is not None:
                self._monitor.drawdown_alert(drawdown, limit)
        return breached

    def losing_streak_multiplier(self) -> float:
        threshold = self.config.streak_reduction_threshold
        factor = self.config.streak_reduction_factor
        if not damping_enabled(threshold, factor):
            return 1.0

        history = read_history(self._trade_history, self.config.streak_lookback)
        if not history.ok:
            logger.debug("Losing streak damping skipped: %s", history.error)
            return 1.0

        losses = count_losing_streak(history.trades)
        multiplier = streak_multiplier(losses, threshold, factor)
        if multiplier < 1.0:
            logger.warning(
                "Losing streak of %d trades, reducing position size to x%.4f",
                losses,
                multiplier,
            )
            self._log(
                "losing_streak",
                {"losses": losses, "threshold": threshold, "factor": factor, "multiplier": multiplier},
            )
            if self._monitor is not None:
                self._monitor.losing_streak(losses, multiplier)
        return multiplier

"""Monitoring and alert routing."""

from __future__ import annotations

from dataclasses import dataclass

from equity_bot.monitoring.notifier import Notifier


@dataclass
class Monitor:
    notifier: Notifier

    def daily_loss_breach(self, today_pnl_pct: float, limit_pct: float) -> None:
        self.notifier.notify(
            "DAILY_LOSS",
            f"today's P&L {today_pnl_pct * 100:.2f}% is below -{limit_pct * 100:.1f}%, trading should pause",
        )

    def drawdown_alert(self, drawdown_pct: float, limit_pct: float) -> None:
        self.notifier.notify(
            "DRAWDOWN",
            f"drawdown {drawdown_pct * 100:.2f}% exceeds {limit_pct * 100:.1f}%",
        )

    def losing_streak(self, losses: int, multiplier: float) -> None:
        self.notifier.notify(
            "LOSING_STREAK",
            f"{losses} consecutive losses, position size x{multiplier:.2f}",
        )

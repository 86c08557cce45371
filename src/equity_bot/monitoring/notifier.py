"""Notification backends."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field


class Notifier:
    def notify(self, event: str, message: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError


@dataclass
class LogNotifier(Notifier):
    prefix: str = "[EQUITY]"
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("equity_bot.alerts"))

    def notify(self, event: str, message: str) -> None:
        self.logger.warning("%s %s: %s", self.prefix, event, message)


@dataclass
class MemoryNotifier(Notifier):
    events: list[tuple[str, str]] = field(default_factory=list)

    def notify(self, event: str, message: str) -> None:
        self.events.append((event, message))

"""Monitoring exports."""

from equity_bot.monitoring.audit import AuditLog
from equity_bot.monitoring.monitor import Monitor
from equity_bot.monitoring.notifier import LogNotifier, MemoryNotifier, Notifier

__all__ = [
    "AuditLog",
    "LogNotifier",
    "MemoryNotifier",
    "Monitor",
    "Notifier",
]

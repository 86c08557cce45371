"""Config loading and freezing."""

from equity_bot.config.loader import (
    compute_config_hash,
    freeze_config,
    load_config,
    serialize_config,
    verify_config_lock,
)
from equity_bot.config.models import BotConfig, DataConfig, MonitoringConfig

__all__ = [
    "BotConfig",
    "DataConfig",
    "MonitoringConfig",
    "compute_config_hash",
    "freeze_config",
    "load_config",
    "serialize_config",
    "verify_config_lock",
]

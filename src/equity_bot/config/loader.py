"""Load and freeze configuration files."""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional

import yaml

from equity_bot.backtest.models import BacktestConfig
from equity_bot.backtest.roi import parse_roi_table
from equity_bot.config.models import BotConfig, DataConfig, MonitoringConfig
from equity_bot.risk.models import RiskConfig
from equity_bot.simulator.models import DEFAULT_CONFIDENCE_LEVELS, MonteCarloConfig

# camelCase spellings accepted for the risk section.
_RISK_ALIASES = {
    "max_positions": "maxPositions",
    "max_position_size_pct": "maxPositionSizePct",
    "max_risk_per_trade_pct": "maxRiskPerTradePct",
    "max_sector_concentration": "maxSectorConcentration",
    "max_sector_value_pct": "maxSectorValuePct",
    "daily_loss_limit_pct": "dailyLossLimitPct",
    "max_drawdown_alert_pct": "maxDrawdownAlertPct",
    "streak_reduction_threshold": "streakReductionThreshold",
    "streak_reduction_factor": "streakReductionFactor",
    "streak_lookback": "streakLookback",
}

_MISSING = object()


def load_config(path: str | Path) -> BotConfig:
    path = Path(path)
    data = _load_yaml(path)

    return BotConfig(
        name=str(_require(data, "name")),
        version=str(_require(data, "version")),
        risk=_parse_risk(data.get("risk") or {}),
        backtest=_parse_backtest(_require(data, "backtest")),
        monte_carlo=_parse_monte_carlo(data.get("monte_carlo") or {}),
        monitoring=_parse_monitoring(data.get("monitoring") or {}),
        data=_parse_data(data.get("data") or {}),
    )


def compute_config_hash(path: str | Path) -> str:
    path = Path(path)
    content = path.read_bytes()
    return hashlib.sha256(content).hexdigest()


def _default_lock_path(path: Path, lock_path: Optional[str | Path]) -> Path:
    if lock_path is None:
        return path.with_suffix(path.suffix + ".lock.json")
    return Path(lock_path)


def freeze_config(path: str | Path, lock_path: Optional[str | Path] = None) -> Path:
    path = Path(path)
    lock_path = _default_lock_path(path, lock_path)
    payload = {
        "config_path": str(path),
        "config_hash": compute_config_hash(path),
        "frozen_at_utc": datetime.now(timezone.utc).isoformat(),
    }
    lock_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return lock_path


def verify_config_lock(path: str | Path, lock_path: Optional[str | Path] = None) -> bool:
    path = Path(path)
    lock_path = _default_lock_path(path, lock_path)
    if not lock_path.exists():
        return False
    payload = json.loads(lock_path.read_text(encoding="utf-8"))
    return payload.get("config_hash") == compute_config_hash(path)


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Config must be a mapping")
    return data


def _require(data: dict[str, Any], key: str) -> Any:
    if key not in data:
        raise ValueError(f"Missing required config key: {key}")
    return data[key]


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def _parse_date(value: Any, key: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise ValueError(f"Invalid {key}: {value}") from exc


def _parse_risk(data: dict[str, Any]) -> RiskConfig:
    defaults = RiskConfig()

    def get(key: str) -> Any:
        value = data.get(key, _MISSING)
        if value is _MISSING:
            value = data.get(_RISK_ALIASES[key], _MISSING)
        if value is _MISSING:
            return getattr(defaults, key)
        return value

    return RiskConfig(
        max_positions=int(get("max_positions")),
        max_position_size_pct=float(get("max_position_size_pct")),
        max_risk_per_trade_pct=float(get("max_risk_per_trade_pct")),
        max_sector_concentration=int(get("max_sector_concentration")),
        max_sector_value_pct=_optional_float(get("max_sector_value_pct")),
        daily_loss_limit_pct=float(get("daily_loss_limit_pct")),
        max_drawdown_alert_pct=float(get("max_drawdown_alert_pct")),
        streak_reduction_threshold=int(get("streak_reduction_threshold")),
        streak_reduction_factor=float(get("streak_reduction_factor")),
        streak_lookback=int(get("streak_lookback")),
    )


def _parse_backtest(data: dict[str, Any]) -> BacktestConfig:
    if not isinstance(data, dict):
        raise ValueError("backtest section must be a mapping")
    symbols = [str(symbol).upper() for symbol in _require(data, "symbols")]
    if not symbols:
        raise ValueError("backtest.symbols must not be empty")
    start_date = _parse_date(_require(data, "start_date"), "start_date")
    end_date = _parse_date(_require(data, "end_date"), "end_date")
    if end_date < start_date:
        raise ValueError(f"backtest.end_date {end_date} is before start_date {start_date}")

    roi_table = parse_roi_table(data.get("roi_table")) or None
    exit_conditions = data.get("exit_conditions") or []
    if isinstance(exit_conditions, str):
        exit_conditions = [exit_conditions]

    return BacktestConfig(
        symbols=symbols,
        start_date=start_date,
        end_date=end_date,
        initial_capital=float(data.get("initial_capital", 10000.0)),
        max_positions=int(data.get("max_positions", 5)),
        max_position_size_pct=float(data.get("max_position_size_pct", 0.15)),
        stop_loss_pct=float(data.get("stop_loss_pct", 0.05)),
        take_profit_pct=_optional_float(data.get("take_profit_pct")),
        roi_table=roi_table,
        trailing_stop=bool(data.get("trailing_stop", False)),
        commission=float(data.get("commission", 0.0)),
        entry_threshold=float(data.get("entry_threshold", 0.6)),
        min_history_candles=int(data.get("min_history_candles", 50)),
        exit_conditions=tuple(str(text) for text in exit_conditions),
    )


def _parse_monte_carlo(data: dict[str, Any]) -> MonteCarloConfig:
    seed = data.get("seed")
    levels = tuple(float(level) for level in data.get("confidence_levels", DEFAULT_CONFIDENCE_LEVELS))
    for level in levels:
        if not 0.0 <= level <= 1.0:
            raise ValueError(f"monte_carlo.confidence_levels entry {level} must be within [0, 1]")
    return MonteCarloConfig(
        simulations=int(data.get("simulations", 10000)),
        confidence_levels=levels,
        seed=int(seed) if seed is not None else None,
    )


def _parse_monitoring(data: dict[str, Any]) -> MonitoringConfig:
    history = data.get("trade_history_path")
    return MonitoringConfig(
        audit_log_path=str(data.get("audit_log_path", "runtime/audit.log")),
        trade_history_path=str(history) if history is not None else None,
    )


def _parse_data(data: dict[str, Any]) -> DataConfig:
    return DataConfig(
        candles_dir=str(data.get("candles_dir", "data/candles")),
        lookback_days=int(data.get("lookback_days", 365)),
        max_workers=int(data.get("max_workers", 8)),
    )


def serialize_config(config: BotConfig) -> dict[str, Any]:
    payload = asdict(config)
    backtest = payload["backtest"]
    backtest["symbols"] = list(config.backtest.symbols)
    backtest["start_date"] = config.backtest.start_date.isoformat()
    backtest["end_date"] = config.backtest.end_date.isoformat()
    backtest["exit_conditions"] = list(config.backtest.exit_conditions)
    if config.backtest.roi_table is not None:
        backtest["roi_table"] = {str(minutes): value for minutes, value in config.backtest.roi_table.items()}
    payload["monte_carlo"]["confidence_levels"] = list(config.monte_carlo.confidence_levels)
    return payload

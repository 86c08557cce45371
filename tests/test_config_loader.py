from datetime import date
from pathlib import Path

import pytest

yaml = pytest.importorskip("yaml")

from equity_bot.config import freeze_config, load_config, serialize_config, verify_config_lock

SAMPLE = Path(__file__).parent.parent / "configs" / "equity_bot.yaml"


def _write(tmp_path, payload):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(payload), encoding="utf-8")
    return path


def _minimal(**overrides):
    payload = {
        "name": "test",
        "version": "0.1",
        "backtest": {"symbols": ["aapl"], "start_date": "2024-01-02", "end_date": "2024-03-01"},
    }
    payload.update(overrides)
    return payload


def test_load_config_sample():
    config = load_config(SAMPLE)
    assert config.name == "equity-bot-daily"
    assert config.risk.max_positions == 5
    assert config.risk.max_sector_value_pct == 0.35
    assert config.risk.streak_lookback == 100
    assert list(config.backtest.symbols) == ["AAPL", "MSFT", "NVDA"]
    assert config.backtest.start_date == date(2024, 1, 2)
    assert config.backtest.roi_table == {0.0: 0.10, 14400.0: 0.05, 43200.0: 0.0}
    assert config.backtest.exit_conditions == ("RSI above 75", "close below SMA50 and profit < 0%")
    assert config.monte_carlo.seed == 42


def test_minimal_config_uses_defaults(tmp_path):
    config = load_config(_write(tmp_path, _minimal()))
    assert list(config.backtest.symbols) == ["AAPL"]
    assert config.backtest.roi_table is None
    assert config.backtest.exit_conditions == ()
    assert config.risk.max_risk_per_trade_pct == 0.02
    assert config.monitoring.trade_history_path is None
    assert config.monte_carlo.seed is None


def test_risk_section_accepts_both_spellings(tmp_path):
    payload = _minimal(risk={"max_positions": 3, "dailyLossLimitPct": 0.03, "maxSectorValuePct": None})
    config = load_config(_write(tmp_path, payload))
    assert config.risk.max_positions == 3
    assert config.risk.daily_loss_limit_pct == 0.03
    assert config.risk.max_sector_value_pct is None


def test_single_exit_condition_string(tmp_path):
    payload = _minimal()
    payload["backtest"]["exit_conditions"] = "profit > 10%"
    config = load_config(_write(tmp_path, payload))
    assert config.backtest.exit_conditions == ("profit > 10%",)


def test_missing_required_keys(tmp_path):
    payload = _minimal()
    del payload["version"]
    with pytest.raises(ValueError, match="version"):
        load_config(_write(tmp_path, payload))

    payload = _minimal()
    del payload["backtest"]["symbols"]
    with pytest.raises(ValueError, match="symbols"):
        load_config(_write(tmp_path, payload))


def test_invalid_backtest_window(tmp_path):
    payload = _minimal()
    payload["backtest"]["end_date"] = "2023-12-31"
    with pytest.raises(ValueError, match="before start_date"):
        load_config(_write(tmp_path, payload))

    payload = _minimal()
    payload["backtest"]["symbols"] = []
    with pytest.raises(ValueError, match="must not be empty"):
        load_config(_write(tmp_path, payload))


def test_config_must_be_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError, match="mapping"):
        load_config(path)


def test_freeze_and_verify(tmp_path):
    target = tmp_path / "equity_bot.yaml"
    target.write_text(SAMPLE.read_text(encoding="utf-8"), encoding="utf-8")

    assert not verify_config_lock(target)
    lock_path = freeze_config(target)
    assert lock_path.name == "equity_bot.yaml.lock.json"
    assert verify_config_lock(target, lock_path)

    target.write_text(SAMPLE.read_text(encoding="utf-8") + "\n# edited\n", encoding="utf-8")
    assert not verify_config_lock(target, lock_path)


def test_serialize_config_is_yaml_safe():
    payload = serialize_config(load_config(SAMPLE))
    assert payload["backtest"]["start_date"] == "2024-01-02"
    assert payload["backtest"]["roi_table"] == {"0.0": 0.10, "14400.0": 0.05, "43200.0": 0.0}
    assert payload["backtest"]["exit_conditions"][0] == "RSI above 75"
    assert yaml.safe_load(yaml.safe_dump(payload)) == payload


def test_confidence_levels_must_be_fractions(tmp_path):
    with pytest.raises(ValueError, match="confidence_levels"):
        load_config(_write(tmp_path, _minimal(monte_carlo={"confidence_levels": [95]})))
    with pytest.raises(ValueError, match="confidence_levels"):
        load_config(_write(tmp_path, _minimal(monte_carlo={"confidence_levels": [-0.05, 0.5]})))

    config = load_config(_write(tmp_path, _minimal(monte_carlo={"confidence_levels": [0.0, 0.5, 1.0]})))
    assert config.monte_carlo.confidence_levels == (0.0, 0.5, 1.0)

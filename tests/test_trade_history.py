import sqlite3
import threading
from datetime import datetime

import pytest

from equity_bot.risk import ClosedTrade, RiskConfig, RiskGuard
from equity_bot.storage import TradeHistory


def _trade(pnl, day, symbol="AAPL"):
    exit_time = datetime(2024, 6, day, 15, 30) if day is not None else None
    return ClosedTrade(pnl=pnl, exit_price=100.0 + pnl, entry_price=100.0, symbol=symbol, exit_time=exit_time)


def test_recent_trades_newest_first(tmp_path):
    history = TradeHistory(tmp_path / "trades.db")
    history.record_closed_trade(_trade(5.0, 3, "AAA"))
    history.record_closed_trade(_trade(-2.0, None, "NUL"))
    history.record_closed_trade(_trade(-1.0, 5, "BBB"))
    history.record_closed_trade(_trade(3.0, 4, "CCC"))

    recent = history.recent_closed_trades(10)
    assert [trade.symbol for trade in recent] == ["BBB", "CCC", "AAA", "NUL"]
    assert recent[0].exit_time == datetime(2024, 6, 5, 15, 30)
    assert recent[-1].exit_time is None
    assert [trade.symbol for trade in history.recent_closed_trades(2)] == ["BBB", "CCC"]
    assert history.count() == 4
    history.close()


def test_history_feeds_losing_streak(tmp_path):
    history = TradeHistory(tmp_path / "trades.db")
    history.record_closed_trade(_trade(10.0, 1))
    for day in (2, 3, 4):
        history.record_closed_trade(_trade(-5.0, day))

    guard = RiskGuard(RiskConfig(streak_reduction_threshold=3, streak_reduction_factor=0.5), trade_history=history)
    assert guard.losing_streak_multiplier() == 0.5

    history.record_closed_trade(_trade(1.0, 5))
    assert guard.losing_streak_multiplier() == 1.0
    history.close()


def test_connections_are_per_thread(tmp_path):
    history = TradeHistory(tmp_path / "trades.db")
    errors = []

    def worker(day):
        try:
            history.record_closed_trade(_trade(-1.0, day))
        except Exception as exc:  # pragma: no cover - surfaced via errors list
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(day,)) for day in range(1, 6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert history.count() == 5


def test_close_releases_worker_thread_connections(tmp_path):
    history = TradeHistory(tmp_path / "trades.db")
    threads = [
        threading.Thread(target=history.record_closed_trade, args=(_trade(-1.0, day),)) for day in range(1, 4)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    opened = list(history._connections)
    assert len(opened) == 4

    history.close()
    assert history._connections == []
    for conn in opened:
        with pytest.raises(sqlite3.ProgrammingError):
            conn.execute("SELECT 1")

    assert history.count() == 3
    history.close()

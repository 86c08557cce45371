"""SQLite store of closed trades, read back by the losing-streak check."""

from __future__ import annotations

import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

from equity_bot.risk.models import ClosedTrade


class TradeHistory:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._local = threading.local()
        self._lock = threading.Lock()
        self._connections: list[sqlite3.Connection] = []
        self._conn()

    def _conn(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = sqlite3.connect(self.path, check_same_thread=False)
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS closed_trades (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    symbol TEXT,
                    entry_price REAL,
                    exit_price REAL,
                    pnl REAL,
                    exit_time TEXT
                )
                """
            )
            conn.commit()
            self._local.conn = conn
            with self._lock:
                self._connections.append(conn)
        return conn

    def record_closed_trade(self, trade: ClosedTrade) -> int:
        conn = self._conn()
        exit_time = trade.exit_time.isoformat() if trade.exit_time is not None else None
        cursor = conn.execute(
            "INSERT INTO closed_trades (symbol, entry_price, exit_price, pnl, exit_time) "
            "VALUES (?, ?, ?, ?, ?)",
            (trade.symbol, trade.entry_price, trade.exit_price, trade.pnl, exit_time),
        )
        conn.commit()
        return int(cursor.lastrowid)

    def recent_closed_trades(self, limit: int) -> list[ClosedTrade]:
        """Most recent exit first; trades without an exit time sort last."""
        conn = self._conn()
        rows = conn.execute(
            "SELECT symbol, entry_price, exit_price, pnl, exit_time FROM closed_trades "
            "ORDER BY exit_time IS NULL, exit_time DESC, id DESC LIMIT ?",
            (int(limit),),
        ).fetchall()
        return [
            ClosedTrade(
                pnl=row[3],
                exit_price=row[2],
                entry_price=row[1],
                symbol=row[0],
                exit_time=_parse_time(row[4]),
            )
            for row in rows
        ]

    def count(self) -> int:
        row = self._conn().execute("SELECT COUNT(*) FROM closed_trades").fetchone()
        return int(row[0])

    def close(self) -> None:
        """Close the connections of every thread; later calls open fresh ones."""
        with self._lock:
            connections, self._connections = self._connections, []
            self._local = threading.local()
        for conn in connections:
            conn.close()


def _parse_time(raw: Optional[str]) -> Optional[datetime]:
    if raw is None:
        return None
    return datetime.fromisoformat(raw)

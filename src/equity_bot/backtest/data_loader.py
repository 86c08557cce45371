"""Historical candle loading for backtests."""

from __future__ import annotations

import csv
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Mapping, Optional, Protocol, Sequence

from equity_bot.backtest.models import Candle

logger = logging.getLogger(__name__)

CandleMap = dict[str, list[Candle]]


class CandleLoader(Protocol):
    def load_multiple(self, symbols: Sequence[str], start_date: date, end_date: date) -> CandleMap:
        ...

    def get_common_dates(self, data: Mapping[str, Sequence[Candle]], start_date: date, end_date: date) -> list[date]:
        ...


def common_dates(data: Mapping[str, Sequence[Candle]], start_date: date, end_date: date) -> list[date]:
    """Sorted dates inside ``[start_date, end_date]`` present for every symbol."""
    if not data:
        return []
    date_sets = [
        {candle.date for candle in candles if start_date <= candle.date <= end_date}
        for candles in data.values()
    ]
    shared = set.intersection(*date_sets)
    return sorted(shared)


def _parse_date(raw: str) -> date:
    raw = raw.strip()
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return datetime.fromisoformat(raw).date()


def _parse_candle(row: dict) -> Optional[Candle]:
    date_raw = row.get("date") or row.get("time") or row.get("timestamp")
    if not date_raw:
        return None
    try:
        close = float(row["close"])
        return Candle(
            date=_parse_date(date_raw),
            open=float(row.get("open") or close),
            high=float(row.get("high") or close),
            low=float(row.get("low") or close),
            close=close,
            volume=float(row.get("volume") or 0.0),
        )
    except (KeyError, TypeError, ValueError):
        return None


class InMemoryCandleLoader:
    """Serves candles already held in memory, e.g. in tests."""

    def __init__(self, data: Mapping[str, Sequence[Candle]]) -> None:
        self._data = {symbol: sorted(candles, key=lambda c: c.date) for symbol, candles in data.items()}

    def load_multiple(self, symbols: Sequence[str], start_date: date, end_date: date) -> CandleMap:
        result: CandleMap = {}
        for symbol in symbols:
            candles = [c for c in self._data.get(symbol, []) if c.date <= end_date]
            if candles:
                result[symbol] = candles
            else:
                logger.warning("Skipping %s: no data available", symbol)
        return result

    def get_common_dates(self, data: Mapping[str, Sequence[Candle]], start_date: date, end_date: date) -> list[date]:
        return common_dates(data, start_date, end_date)


class CsvCandleLoader:
    """Reads ``<SYMBOL>.csv`` files with date,open,high,low,close,volume columns.

    Each symbol keeps ``lookback_days`` calendar days before ``start_date``
    so indicators have warm-up history on the first simulated day.
    """

    def __init__(self, directory: str | Path, lookback_days: int = 365, max_workers: int = 8) -> None:
        self.directory = Path(directory)
        self.lookback_days = lookback_days
        self.max_workers = max_workers

    def load_symbol(self, symbol: str, start_date: date, end_date: date) -> list[Candle]:
        path = self.directory / f"{symbol}.csv"
        if not path.exists():
            logger.warning("No candle file for %s at %s", symbol, path)
            return []

        window_start = start_date - timedelta(days=self.lookback_days)
        candles: list[Candle] = []
        skipped = 0
        try:
            with path.open("r", encoding="utf-8", newline="") as handle:
                for row in csv.DictReader(handle):
                    candle = _parse_candle(row)
                    if candle is None:
                        skipped += 1
                        continue
                    if window_start <= candle.date <= end_date:
                        candles.append(candle)
        except (OSError, UnicodeDecodeError, csv.Error):
            logger.exception("Failed to read candle file for %s at %s", symbol, path)
            return []
        if skipped:
            logger.warning("Skipped %d malformed rows in %s", skipped, path)
        candles.sort(key=lambda c: c.date)
        logger.info("Loaded %d candles for %s", len(candles), symbol)
        return candles

    def load_multiple(self, symbols: Sequence[str], start_date: date, end_date: date) -> CandleMap:
        if not symbols:
            return {}
        workers = max(1, min(self.max_workers, len(symbols)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            loaded = list(pool.map(lambda s: self.load_symbol(s, start_date, end_date), symbols))

        result: CandleMap = {}
        for symbol, candles in zip(symbols, loaded):
            if candles:
                result[symbol] = candles
            else:
                logger.warning("Skipping %s: no data available", symbol)
        return result

    def get_common_dates(self, data: Mapping[str, Sequence[Candle]], start_date: date, end_date: date) -> list[date]:
        return common_dates(data, start_date, end_date)

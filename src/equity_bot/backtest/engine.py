"""Day-by-day backtest of a scoring strategy over historical candles."""

from __future__ import annotations

import bisect
import logging
import math
from datetime import date
from typing import Callable, Mapping, Optional, Sequence

from equity_bot.backtest.data_loader import CandleLoader
from equity_bot.backtest.metrics import compute_daily_returns, compute_metrics
from equity_bot.backtest.models import (
    BacktestConfig,
    BacktestPosition,
    BacktestResult,
    BacktestTrade,
    Candle,
    EntrySignal,
    EquityPoint,
    ExitReason,
    PendingEntry,
)
from equity_bot.backtest.roi import parse_roi_table, should_exit_by_roi
from equity_bot.exit_conditions import ExitCondition, ExitContext, evaluate_all, parse

logger = logging.getLogger(__name__)

ScoreFn = Callable[[Sequence[Candle]], float]
IndicatorFn = Callable[[Sequence[Candle]], Mapping[str, float]]

MINUTES_PER_DAY = 1440
VOLUME_AVERAGE_WINDOW = 20


class _SymbolHistory:
    """Date-sorted candles for one symbol with prefix lookup by date."""

    def __init__(self, candles: Sequence[Candle]) -> None:
        self.candles = sorted(candles, key=lambda candle: candle.date)
        self.dates = [candle.date for candle in self.candles]

    def index_of(self, day: date) -> Optional[int]:
        index = bisect.bisect_right(self.dates, day) - 1
        if index < 0 or self.dates[index] != day:
            return None
        return index

    def up_to(self, index: int) -> list[Candle]:
        return self.candles[: index + 1]


class BacktestEngine:
    """Replays candles through ``score_fn`` and the configured exit rules.

    Signals seen on day *t* are filled at day *t+1*'s open, so no decision
    uses a price that was not yet known.
    """

    def __init__(
        self,
        config: BacktestConfig,
        score_fn: ScoreFn,
        data_loader: CandleLoader,
        indicator_fn: Optional[IndicatorFn] = None,
    ) -> None:
        self.config = config
        self._score_fn = score_fn
        self._data_loader = data_loader
        self._indicator_fn = indicator_fn
        self._roi_table = parse_roi_table(config.roi_table) if config.roi_table else {}
        self._exit_rules = self._parse_exit_rules(config.exit_conditions)
        self._reset()

    @staticmethod
    def _parse_exit_rules(texts: Sequence[str]) -> list[ExitCondition]:
        rules: list[ExitCondition] = []
        for text in texts:
            parsed = parse(text)
            if not parsed:
                logger.warning("Ignoring unparseable exit condition %r", text)
            rules.extend(parsed)
        return rules

    def _reset(self) -> None:
        self.cash = float(self.config.initial_capital)
        self.positions: dict[str, BacktestPosition] = {}
        self.trades: list[BacktestTrade] = []
        self.equity_curve: list[EquityPoint] = []
        self._pending: list[PendingEntry] = []
        self._last_close: dict[str, float] = {}
        self._indicator_cache: dict[str, dict[date, Mapping[str, float]]] = {}

    def run(self) -> BacktestResult:
        config = self.config
        self._reset()
        logger.info(
            "Starting backtest: %d symbols, %s to %s, capital %.2f",
            len(config.symbols),
            config.start_date,
            config.end_date,
            config.initial_capital,
        )

        data = self._data_loader.load_multiple(config.symbols, config.start_date, config.end_date)
        if not data:
            logger.warning("No data loaded for any symbol")
            return self._build_result()

        trading_dates = self._data_loader.get_common_dates(data, config.start_date, config.end_date)
        if not trading_dates:
            logger.warning("No common trading dates found")
            return self._build_result()

        histories = {symbol: _SymbolHistory(candles) for symbol, candles in data.items()}
        logger.info("Data loaded: %d trading days, %d symbols", len(trading_dates), len(histories))

        for offset, day in enumerate(trading_dates):
            today: dict[str, tuple[_SymbolHistory, int]] = {}
            for symbol, history in histories.items():
                index = history.index_of(day)
                if index is not None:
                    today[symbol] = (history, index)

            self._fill_pending(day, today)
            self._check_exits(day, today)

            has_next_day = offset + 1 < len(trading_dates)
            capacity = config.max_positions - len(self.positions) - len(self._pending)
            if has_next_day and capacity > 0:
                for signal in self._generate_signals(today)[:capacity]:
                    self._pending.append(PendingEntry(signal=signal, fill_date=trading_dates[offset + 1]))

            for symbol, (history, index) in today.items():
                self._last_close[symbol] = history.candles[index].close
            self.equity_curve.append(EquityPoint(date=day, equity=self._mark_to_market()))

        last_day = trading_dates[-1]
        for symbol, position in list(self.positions.items()):
            final_close = self._last_close.get(symbol, position.entry_price)
            self._close_position(symbol, final_close, last_day, ExitReason.END_OF_DATA)

        logger.info("Backtest complete: %d trades, final equity %.2f", len(self.trades), self.cash)
        return self._build_result()

    def _fill_pending(self, day: date, today: Mapping[str, tuple[_SymbolHistory, int]]) -> None:
        pending, self._pending = self._pending, []
        for entry in pending:
            if entry.fill_date != day:
                logger.debug("Dropping stale pending entry for %s", entry.signal.symbol)
                continue
            symbol = entry.signal.symbol
            if symbol in self.positions or symbol not in today:
                continue
            history, index = today[symbol]
            self._open_position(entry.signal, history.candles[index].open, day)

    def _open_position(self, signal: EntrySignal, entry_price: float, day: date) -> None:
        config = self.config
        if entry_price <= 0:
            return
        equity = self.cash + sum(p.shares * p.entry_price for p in self.positions.values())
        position_value = min(config.max_position_size_pct * equity, self.cash)
        if position_value <= 0:
            return
        shares = math.floor(position_value / entry_price)
        if shares <= 0:
            logger.debug("Skipping %s: position rounds to zero shares", signal.symbol)
            return
        cost = shares * entry_price + config.commission
        if cost > self.cash:
            logger.debug("Skipping %s: cost %.2f exceeds cash %.2f", signal.symbol, cost, self.cash)
            return

        stop_loss = entry_price * (1.0 - config.stop_loss_pct)
        take_profit = entry_price * (1.0 + config.take_profit_pct) if config.take_profit_pct is not None else None
        self.cash -= cost
        self.positions[signal.symbol] = BacktestPosition(
            symbol=signal.symbol,
            shares=shares,
            entry_price=entry_price,
            entry_time=day,
            stop_loss=stop_loss,
            high_water_mark=entry_price,
            technical_score=signal.score,
            trailing_stop=stop_loss if config.trailing_stop else None,
            take_profit=take_profit,
        )
        logger.debug("Entry %s: %d shares at %.4f on %s", signal.symbol, shares, entry_price, day)

    def _check_exits(self, day: date, today: Mapping[str, tuple[_SymbolHistory, int]]) -> None:
        exits: list[tuple[str, float, str]] = []
        for symbol, position in self.positions.items():
            if symbol not in today:
                continue
            history, index = today[symbol]
            exit_signal = self._exit_for(position, history, index, day)
            if exit_signal is not None:
                exits.append((symbol, *exit_signal))

        for symbol, price, reason in exits:
            self._close_position(symbol, price, day, reason)

    def _exit_for(self, position: BacktestPosition, history: _SymbolHistory, index: int, day: date) -> Optional[tuple[float, str]]:
        config = self.config
        candle = history.candles[index]

        if candle.low <= position.stop_loss:
            return position.stop_loss, ExitReason.STOPLOSS

        if position.take_profit is not None and candle.high >= position.take_profit:
            return position.take_profit, ExitReason.TAKEPROFIT

        if config.trailing_stop:
            position.update_trailing_stop(candle.high, config.stop_loss_pct)
            if position.trailing_stop is not None and candle.low <= position.trailing_stop:
                return position.trailing_stop, ExitReason.TRAILING_STOP

        if self._roi_table:
            elapsed = (day - position.entry_time).days * MINUTES_PER_DAY
            profit = (candle.close - position.entry_price) / position.entry_price
            if should_exit_by_roi(self._roi_table, elapsed, profit):
                return candle.close, ExitReason.ROI_TABLE

        if self._exit_rules:
            evaluation = evaluate_all(self._exit_rules, self._exit_context(position, history, index, day))
            if evaluation.should_exit:
                logger.debug("Exit rule for %s: %s", position.symbol, "; ".join(evaluation.triggered))
                return candle.close, ExitReason.EXIT_CONDITION

        return None

    def _exit_context(self, position: BacktestPosition, history: _SymbolHistory, index: int, day: date) -> ExitContext:
        candle = history.candles[index]
        days_held = (day - position.entry_time).days
        previous = history.candles[index - 1] if index > 0 else None
        window = history.candles[max(0, index - VOLUME_AVERAGE_WINDOW):index]
        avg_volume = sum(c.volume for c in window) / len(window) if window else None

        indicators: Mapping[str, float] = {}
        previous_indicators: Mapping[str, float] = {}
        if self._indicator_fn is not None:
            indicators = self._indicators(position.symbol, history, index)
            if index > 0:
                previous_indicators = self._indicators(position.symbol, history, index - 1)

        return ExitContext(
            current_price=candle.close,
            entry_price=position.entry_price,
            pnl_pct=(candle.close - position.entry_price) / position.entry_price * 100.0,
            pnl_abs=(candle.close - position.entry_price) * position.shares,
            days_held=days_held,
            hours_held=days_held * 24,
            previous_price=previous.close if previous is not None else None,
            indicators=indicators,
            previous_indicators=previous_indicators,
            volume=candle.volume,
            avg_volume=avg_volume,
        )

    def _indicators(self, symbol: str, history: _SymbolHistory, index: int) -> Mapping[str, float]:
        cache = self._indicator_cache.setdefault(symbol, {})
        day = history.dates[index]
        if day in cache:
            return cache[day]
        try:
            snapshot = dict(self._indicator_fn(history.up_to(index)))
        except Exception:
            logger.exception("Indicator calculation failed for %s on %s", symbol, day)
            snapshot = {}
        # Only today and yesterday are ever requested again.
        for stale in [d for d in cache if d < history.dates[max(0, index - 1)]]:
            del cache[stale]
        cache[day] = snapshot
        return snapshot

    def _generate_signals(self, today: Mapping[str, tuple[_SymbolHistory, int]]) -> list[EntrySignal]:
        config = self.config
        pending_symbols = {entry.signal.symbol for entry in self._pending}
        signals: list[EntrySignal] = []
        for symbol, (history, index) in today.items():
            if symbol in self.positions or symbol in pending_symbols:
                continue
            if index + 1 < config.min_history_candles:
                continue
            candles = history.up_to(index)
            try:
                raw_score = float(self._score_fn(candles))
            except Exception:
                logger.exception("Scoring failed for %s on %s", symbol, history.dates[index])
                continue
            if not math.isfinite(raw_score):
                logger.warning("Ignoring non-finite score %r for %s", raw_score, symbol)
                continue
            score = min(1.0, max(0.0, raw_score / 100.0))
            if score >= config.entry_threshold:
                signals.append(EntrySignal(symbol=symbol, score=score, price=candles[-1].close))
        signals.sort(key=lambda signal: signal.score, reverse=True)
        return signals

    def _close_position(self, symbol: str, exit_price: float, day: date, reason: str) -> None:
        position = self.positions.pop(symbol, None)
        if position is None:
            return
        commission = self.config.commission
        gross = (exit_price - position.entry_price) * position.shares
        self.cash += position.shares * exit_price - commission
        trade = BacktestTrade(
            symbol=symbol,
            entry_price=position.entry_price,
            exit_price=exit_price,
            shares=position.shares,
            entry_time=position.entry_time,
            exit_time=day,
            pnl=round(gross - 2 * commission, 2),
            pnl_pct=round((exit_price - position.entry_price) / position.entry_price, 4),
            exit_reason=reason,
            hold_minutes=(day - position.entry_time).days * MINUTES_PER_DAY,
            technical_score=position.technical_score,
        )
        self.trades.append(trade)
        logger.debug("Exit %s at %.4f on %s (%s), pnl %.2f", symbol, exit_price, day, reason, trade.pnl)

    def _mark_to_market(self) -> float:
        value = self.cash
        for symbol, position in self.positions.items():
            value += position.shares * self._last_close.get(symbol, position.entry_price)
        return round(value, 2)

    def _build_result(self) -> BacktestResult:
        final_equity = self.cash if self.trades else float(self.config.initial_capital)
        metrics = compute_metrics(self.trades, self.equity_curve, self.config.initial_capital, final_equity)
        return BacktestResult(
            config=self.config,
            trades=list(self.trades),
            metrics=metrics,
            equity_curve=list(self.equity_curve),
            daily_returns=compute_daily_returns(self.equity_curve),
        )

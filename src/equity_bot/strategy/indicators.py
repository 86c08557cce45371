"""Technical indicators over a daily candle history."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from equity_bot.backtest.models import Candle


@dataclass(frozen=True)
class Macd:
    macd: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class Stochastic:
    k: float
    d: float


def _ema_series(values: list[float], window: int) -> list[float]:
    """EMA seeded with the SMA of the first ``window`` values."""
    if len(values) < window:
        return []
    alpha = 2.0 / (window + 1.0)
    ema = sum(values[:window]) / window
    series = [ema]
    for value in values[window:]:
        ema = alpha * value + (1.0 - alpha) * ema
        series.append(ema)
    return series


@dataclass
class CandleSeries:
    dates: list[date]
    opens: list[float]
    closes: list[float]
    highs: list[float]
    lows: list[float]
    volumes: list[float]

    def __init__(self, candles: Iterable[Candle] = ()) -> None:
        self.dates = []
        self.opens = []
        self.closes = []
        self.highs = []
        self.lows = []
        self.volumes = []
        for candle in candles:
            self.update(candle)

    def __len__(self) -> int:
        return len(self.closes)

    def update(self, candle: Candle) -> None:
        self.dates.append(candle.date)
        self.opens.append(candle.open)
        self.closes.append(candle.close)
        self.highs.append(candle.high)
        self.lows.append(candle.low)
        self.volumes.append(candle.volume)

    def _typical_prices(self) -> list[float]:
        return [(h + l + c) / 3.0 for h, l, c in zip(self.highs, self.lows, self.closes)]

    def sma(self, window: int) -> Optional[float]:
        if len(self.closes) < window:
            return None
        return sum(self.closes[-window:]) / window

    def ema(self, window: int) -> Optional[float]:
        series = _ema_series(self.closes, window)
        return series[-1] if series else None

    def stddev(self, window: int) -> Optional[float]:
        if len(self.closes) < window:
            return None
        slice_ = self.closes[-window:]
        mean = sum(slice_) / window
        variance = sum((value - mean) ** 2 for value in slice_) / window
        return variance**0.5

    def bollinger(self, window: int = 20, stddevs: float = 2.0) -> Optional[tuple[float, float, float]]:
        mean = self.sma(window)
        deviation = self.stddev(window)
        if mean is None or deviation is None:
            return None
        return mean, mean + stddevs * deviation, mean - stddevs * deviation

    def rsi(self, period: int = 14) -> Optional[float]:
        if len(self.closes) < period + 1:
            return None
        deltas = [
            self.closes[i] - self.closes[i - 1]
            for i in range(len(self.closes) - period, len(self.closes))
        ]
        gains = sum(delta for delta in deltas if delta > 0)
        losses = -sum(delta for delta in deltas if delta < 0)
        if gains == 0 and losses == 0:
            return 50.0
        if losses == 0:
            return 100.0
        return 100.0 - (100.0 / (1.0 + gains / losses))

    def atr(self, period: int = 14) -> Optional[float]:
        if len(self.closes) < period + 1:
            return None
        true_ranges = []
        for index in range(len(self.closes) - period, len(self.closes)):
            high = self.highs[index]
            low = self.lows[index]
            prev_close = self.closes[index - 1]
            true_ranges.append(max(high - low, abs(high - prev_close), abs(low - prev_close)))
        return sum(true_ranges) / period

    def macd(self, fast: int = 12, slow: int = 26, signal: int = 9) -> Optional[Macd]:
        fast_series = _ema_series(self.closes, fast)
        slow_series = _ema_series(self.closes, slow)
        if not slow_series:
            return None
        # Align fast EMA values to the dates covered by the slow EMA.
        offset = slow - fast
        macd_line = [f - s for f, s in zip(fast_series[offset:], slow_series)]
        signal_series = _ema_series(macd_line, signal)
        if not signal_series:
            return None
        return Macd(macd=macd_line[-1], signal=signal_series[-1], histogram=macd_line[-1] - signal_series[-1])

    def adx(self, period: int = 14) -> Optional[float]:
        if len(self.closes) < period + 1:
            return None
        trs: list[float] = []
        plus_dm: list[float] = []
        minus_dm: list[float] = []
        for idx in range(1, len(self.closes)):
            high = self.highs[idx]
            low = self.lows[idx]
            prev_close = self.closes[idx - 1]
            up_move = high - self.highs[idx - 1]
            down_move = self.lows[idx - 1] - low
            trs.append(max(high - low, abs(high - prev_close), abs(low - prev_close)))
            plus_dm.append(up_move if up_move > down_move and up_move > 0 else 0.0)
            minus_dm.append(down_move if down_move > up_move and down_move > 0 else 0.0)

        dx_values: list[float] = []
        for end in range(period, len(trs) + 1):
            tr_sum = sum(trs[end - period : end])
            if tr_sum <= 0:
                continue
            plus_di = 100.0 * sum(plus_dm[end - period : end]) / tr_sum
            minus_di = 100.0 * sum(minus_dm[end - period : end]) / tr_sum
            denom = plus_di + minus_di
            dx_values.append(0.0 if denom <= 0 else 100.0 * abs(plus_di - minus_di) / denom)

        if not dx_values:
            return None
        window = min(period, len(dx_values))
        return sum(dx_values[-window:]) / window

    def stochastic(self, period: int = 14, smooth: int = 3) -> Optional[Stochastic]:
        if len(self.closes) < period + smooth - 1:
            return None
        k_values = []
        for end in range(len(self.closes) - smooth + 1, len(self.closes) + 1):
            highest = max(self.highs[end - period : end])
            lowest = min(self.lows[end - period : end])
            span = highest - lowest
            k_values.append(50.0 if span <= 0 else 100.0 * (self.closes[end - 1] - lowest) / span)
        return Stochastic(k=k_values[-1], d=sum(k_values) / smooth)

    def cci(self, period: int = 20) -> Optional[float]:
        if len(self.closes) < period:
            return None
        typical = self._typical_prices()[-period:]
        mean = sum(typical) / period
        mean_deviation = sum(abs(value - mean) for value in typical) / period
        if mean_deviation == 0:
            return 0.0
        return (typical[-1] - mean) / (0.015 * mean_deviation)

    def mfi(self, period: int = 14) -> Optional[float]:
        if len(self.closes) < period + 1:
            return None
        typical = self._typical_prices()
        positive = 0.0
        negative = 0.0
        for index in range(len(typical) - period, len(typical)):
            flow = typical[index] * self.volumes[index]
            if typical[index] > typical[index - 1]:
                positive += flow
            elif typical[index] < typical[index - 1]:
                negative += flow
        if positive == 0 and negative == 0:
            return 50.0
        if negative == 0:
            return 100.0
        return 100.0 - 100.0 / (1.0 + positive / negative)

    def vwap(self, window: int = 20) -> Optional[float]:
        if len(self.closes) < window:
            return None
        typical = self._typical_prices()[-window:]
        volumes = self.volumes[-window:]
        total_volume = sum(volumes)
        if total_volume <= 0:
            return None
        return sum(price * volume for price, volume in zip(typical, volumes)) / total_volume

    def volume_ratio(self, window: int = 20) -> Optional[float]:
        if len(self.volumes) < window + 1:
            return None
        average = sum(self.volumes[-window - 1 : -1]) / window
        if average <= 0:
            return None
        return self.volumes[-1] / average

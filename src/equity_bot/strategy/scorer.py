"""Composite technical score and indicator snapshots for backtests."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from equity_bot.backtest.models import Candle
from equity_bot.exit_conditions import Indicator
from equity_bot.strategy.indicators import CandleSeries

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 50


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def indicator_snapshot(candles: Sequence[Candle]) -> dict[str, float]:
    """Latest value of every indicator that has enough history."""
    series = CandleSeries(candles)
    values: dict[Indicator, Optional[float]] = {
        Indicator.RSI: series.rsi(14),
        Indicator.SMA20: series.sma(20),
        Indicator.SMA50: series.sma(50),
        Indicator.SMA200: series.sma(200),
        Indicator.EMA12: series.ema(12),
        Indicator.EMA26: series.ema(26),
        Indicator.ADX: series.adx(14),
        Indicator.ATR: series.atr(14),
        Indicator.VWAP: series.vwap(20),
        Indicator.CCI: series.cci(20),
        Indicator.MFI: series.mfi(14),
    }
    macd = series.macd()
    if macd is not None:
        values[Indicator.MACD] = macd.macd
        values[Indicator.MACD_SIGNAL] = macd.signal
        values[Indicator.MACD_HISTOGRAM] = macd.histogram
    bands = series.bollinger(20, 2.0)
    if bands is not None:
        values[Indicator.BB_UPPER] = bands[1]
        values[Indicator.BB_LOWER] = bands[2]
    stochastic = series.stochastic()
    if stochastic is not None:
        values[Indicator.STOCH_K] = stochastic.k
        values[Indicator.STOCH_D] = stochastic.d
    return {indicator.value: value for indicator, value in values.items() if value is not None}


def score_technicals(candles: Sequence[Candle]) -> float:
    """Weighted 0-100 score; above 50 is bullish, 50 when nothing is computable."""
    if not candles:
        return NEUTRAL_SCORE

    series = CandleSeries(candles)
    price = series.closes[-1]
    total_weight = 0.0
    weighted_sum = 0.0

    def add(signal: float, weight: float) -> None:
        nonlocal total_weight, weighted_sum
        total_weight += weight
        weighted_sum += signal * weight

    rsi = series.rsi(14)
    if rsi is not None:
        if rsi < 30:
            signal = 80 + (30 - rsi)
        elif rsi < 40:
            signal = 65
        elif rsi > 70:
            signal = 20 - (rsi - 70)
        elif rsi > 60:
            signal = 35
        else:
            signal = 50
        add(_clamp(signal), 15)

    macd = series.macd()
    if macd is not None:
        hist = macd.histogram
        add(min(50 + hist * 10, 90) if hist > 0 else max(50 + hist * 10, 10), 15)

    sma20, sma50, sma200 = series.sma(20), series.sma(50), series.sma(200)
    if sma20 is not None and sma50 is not None and sma200 is not None:
        signal = 50
        if price > sma20 and price > sma50 and price > sma200:
            signal = 85
        elif price > sma20 and price > sma50:
            signal = 70
        elif price > sma20:
            signal = 60
        elif price < sma20 and price < sma50 and price < sma200:
            signal = 15
        elif price < sma20 and price < sma50:
            signal = 30
        elif price < sma20:
            signal = 40
        signal = min(signal + 5, 100) if sma50 > sma200 else max(signal - 5, 0)
        add(signal, 15)

    ema12, ema26 = series.ema(12), series.ema(26)
    if ema12 is not None and ema26 is not None:
        add(70 if ema12 > ema26 else 30, 5)

    bands = series.bollinger(20, 2.0)
    if bands is not None:
        _, upper, lower = bands
        if upper - lower > 0:
            # Mean reversion: near the lower band is bullish.
            add(_clamp((1 - (price - lower) / (upper - lower)) * 100), 10)

    adx = series.adx(14)
    if adx is not None:
        add(65 if adx > 25 else 55 if adx > 20 else 45, 5)

    stochastic = series.stochastic()
    if stochastic is not None:
        signal = 80 if stochastic.k < 20 else 20 if stochastic.k > 80 else 50
        signal += 10 if stochastic.k > stochastic.d else -10
        add(_clamp(signal), 10)

    mfi = series.mfi(14)
    if mfi is not None:
        add(80 if mfi < 20 else 20 if mfi > 80 else 50, 5)

    cci = series.cci(20)
    if cci is not None:
        add(75 if cci < -100 else 25 if cci > 100 else 50, 5)

    volume_ratio = series.volume_ratio(20)
    if volume_ratio is not None:
        add(60 if volume_ratio > 1.5 else 40 if volume_ratio < 0.5 else 50, 2)

    if total_weight == 0:
        return NEUTRAL_SCORE
    score = round(weighted_sum / total_weight)
    logger.debug("Technical score %s over %d candles", score, len(series))
    return score

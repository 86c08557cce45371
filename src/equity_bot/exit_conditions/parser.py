"""Heuristic parser turning exit-rule phrases into conditions.

Parsing is best effort: text that matches no known phrasing produces an
empty list, which callers treat as "never triggers".
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

from equity_bot.exit_conditions.models import (
    AllCondition,
    AnyCondition,
    Comparator,
    ExitCondition,
    Indicator,
    IndicatorCondition,
    PriceCondition,
    PriceOperator,
    PriceVsIndicatorCondition,
    ProfitCondition,
    ProfitMetric,
    TimeCondition,
    TimeMetric,
    VolumeCondition,
    VolumeMetric,
)

logger = logging.getLogger(__name__)

INDICATOR_ALIASES: dict[str, Indicator] = {
    "rsi": Indicator.RSI,
    "sma20": Indicator.SMA20,
    "sma-20": Indicator.SMA20,
    "20-sma": Indicator.SMA20,
    "sma 20": Indicator.SMA20,
    "20 sma": Indicator.SMA20,
    "sma50": Indicator.SMA50,
    "sma-50": Indicator.SMA50,
    "50-sma": Indicator.SMA50,
    "sma 50": Indicator.SMA50,
    "50 sma": Indicator.SMA50,
    "sma200": Indicator.SMA200,
    "sma-200": Indicator.SMA200,
    "200-sma": Indicator.SMA200,
    "sma 200": Indicator.SMA200,
    "200 sma": Indicator.SMA200,
    "ema12": Indicator.EMA12,
    "ema-12": Indicator.EMA12,
    "12-ema": Indicator.EMA12,
    "ema26": Indicator.EMA26,
    "ema-26": Indicator.EMA26,
    "26-ema": Indicator.EMA26,
    "macd": Indicator.MACD,
    "macd_signal": Indicator.MACD_SIGNAL,
    "macd signal": Indicator.MACD_SIGNAL,
    "macd_histogram": Indicator.MACD_HISTOGRAM,
    "macd histogram": Indicator.MACD_HISTOGRAM,
    "adx": Indicator.ADX,
    "atr": Indicator.ATR,
    "vwap": Indicator.VWAP,
    "bb_upper": Indicator.BB_UPPER,
    "bb upper": Indicator.BB_UPPER,
    "bollinger upper": Indicator.BB_UPPER,
    "bb_lower": Indicator.BB_LOWER,
    "bb lower": Indicator.BB_LOWER,
    "bollinger lower": Indicator.BB_LOWER,
    "stoch_k": Indicator.STOCH_K,
    "stochastic k": Indicator.STOCH_K,
    "stoch_d": Indicator.STOCH_D,
    "stochastic d": Indicator.STOCH_D,
    "cci": Indicator.CCI,
    "mfi": Indicator.MFI,
}

_COMPARATORS = {
    ">": Comparator.GT,
    "<": Comparator.LT,
    ">=": Comparator.GTE,
    "<=": Comparator.LTE,
    "=": Comparator.EQ,
    "==": Comparator.EQ,
}

_DIRECTION = r"above|below|cross(?:es)?\s*above|cross(?:es)?\s*below"

_STOP_RE = re.compile(r"^stop\s+at\s+\$?([\d.,]+)$")
_PRICE_RE = re.compile(rf"^price\s+({_DIRECTION})\s+\$?([\d.,]+)$")
_PROFIT_RE = re.compile(r"^(?:profit|pnl|p&l)(%?)\s*([><=]+)\s*\$?([\d.,]+)(%?)$")
_HOLD_RE = re.compile(r"^hold\s+(?:for\s+)?([\d.]+)\s*(days?|hours?)$")
_HELD_RE = re.compile(r"^(days?\s*held|hours?\s*held)\s*([><=]+)\s*([\d.]+)$")
_CLOSE_RE = re.compile(rf"^close\s+({_DIRECTION})\s+(.+)$")
_VOLUME_RE = re.compile(r"^(volume\s*ratio|volume)\s*([><=]+)\s*([\d.,]+)$")
_INDICATOR_RE = re.compile(rf"^(.+?)\s+({_DIRECTION})\s+([\d.]+)$")

_AND_RE = re.compile(r"\s+and\s+", re.IGNORECASE)
_OR_RE = re.compile(r"\s+or\s+", re.IGNORECASE)


def parse(text: str) -> list[ExitCondition]:
    if not isinstance(text, str):
        return []
    condition = _parse_expression(text.strip())
    if condition is None:
        logger.debug("Unparseable exit condition text: %r", text)
        return []
    return [condition]


def resolve_indicator(raw: str) -> Optional[Indicator]:
    key = re.sub(r"\s+", " ", raw.strip().lower())
    return INDICATOR_ALIASES.get(key)


def _parse_expression(text: str) -> Optional[ExitCondition]:
    if not text:
        return None

    for splitter, composite in ((_AND_RE, AllCondition), (_OR_RE, AnyCondition)):
        parts = [part.strip() for part in splitter.split(text) if part.strip()]
        if len(parts) > 1:
            parsed = [condition for condition in map(_parse_expression, parts) if condition is not None]
            if len(parsed) > 1:
                return composite(tuple(parsed))
            if parsed:
                return parsed[0]
            return None

    return _parse_clause(text)


def _parse_clause(text: str) -> Optional[ExitCondition]:
    lower = text.lower().strip()
    for pattern, build in _CLAUSES:
        match = pattern.match(lower)
        if match is None:
            continue
        condition = build(match)
        if condition is not None:
            return condition
    return None


def _number(raw: str) -> Optional[float]:
    cleaned = raw.replace("$", "").replace(",", "").replace("%", "").strip()
    try:
        return float(cleaned)
    except ValueError:
        return None


def _direction(raw: str) -> Optional[PriceOperator]:
    if re.search(r"cross(?:es)?\s*above", raw):
        return PriceOperator.CROSSES_ABOVE
    if re.search(r"cross(?:es)?\s*below", raw):
        return PriceOperator.CROSSES_BELOW
    if "above" in raw:
        return PriceOperator.ABOVE
    if "below" in raw:
        return PriceOperator.BELOW
    return None


def _build_stop(match: re.Match) -> Optional[ExitCondition]:
    value = _number(match.group(1))
    if value is None:
        return None
    return PriceCondition(PriceOperator.BELOW, value)


def _build_price(match: re.Match) -> Optional[ExitCondition]:
    operator = _direction(match.group(1))
    value = _number(match.group(2))
    if operator is None or value is None:
        return None
    return PriceCondition(operator, value)


def _build_profit(match: re.Match) -> Optional[ExitCondition]:
    is_pct = "%" in (match.group(1), match.group(4))
    operator = _COMPARATORS.get(match.group(2))
    value = _number(match.group(3))
    if operator is None or value is None:
        return None
    metric = ProfitMetric.PNL_PCT if is_pct else ProfitMetric.PNL_ABS
    return ProfitCondition(metric, operator, value)


def _build_hold(match: re.Match) -> Optional[ExitCondition]:
    value = _number(match.group(1))
    if value is None:
        return None
    metric = TimeMetric.HOURS_HELD if match.group(2).startswith("hour") else TimeMetric.DAYS_HELD
    return TimeCondition(metric, Comparator.GT, value)


def _build_held(match: re.Match) -> Optional[ExitCondition]:
    metric = TimeMetric.HOURS_HELD if match.group(1).startswith("hour") else TimeMetric.DAYS_HELD
    operator = _COMPARATORS.get(match.group(2))
    value = _number(match.group(3))
    if operator is None or value is None:
        return None
    return TimeCondition(metric, operator, value)


def _build_close(match: re.Match) -> Optional[ExitCondition]:
    operator = _direction(match.group(1))
    indicator = resolve_indicator(match.group(2))
    if operator is None or indicator is None:
        return None
    return PriceVsIndicatorCondition(indicator, operator)


def _build_volume(match: re.Match) -> Optional[ExitCondition]:
    metric = VolumeMetric.VOLUME_RATIO if "ratio" in match.group(1) else VolumeMetric.CURRENT_VOLUME
    operator = _COMPARATORS.get(match.group(2))
    value = _number(match.group(3))
    if operator is None or value is None:
        return None
    return VolumeCondition(metric, operator, value)


def _build_indicator(match: re.Match) -> Optional[ExitCondition]:
    indicator = resolve_indicator(match.group(1))
    operator = _direction(match.group(2))
    value = _number(match.group(3))
    if indicator is None or operator is None or value is None:
        return None
    return IndicatorCondition(indicator, operator, value)


# Order matters: the generic indicator phrasing must come last.
_CLAUSES: list[tuple[re.Pattern, Callable[[re.Match], Optional[ExitCondition]]]] = [
    (_STOP_RE, _build_stop),
    (_PRICE_RE, _build_price),
    (_PROFIT_RE, _build_profit),
    (_HOLD_RE, _build_hold),
    (_HELD_RE, _build_held),
    (_CLOSE_RE, _build_close),
    (_VOLUME_RE, _build_volume),
    (_INDICATOR_RE, _build_indicator),
]

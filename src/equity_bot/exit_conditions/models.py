"""Data models for exit-condition rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional, Union


class PriceOperator(str, Enum):
    ABOVE = "above"
    BELOW = "below"
    CROSSES_ABOVE = "crosses_above"
    CROSSES_BELOW = "crosses_below"


class Comparator(str, Enum):
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    EQ = "eq"


class TimeMetric(str, Enum):
    DAYS_HELD = "days_held"
    HOURS_HELD = "hours_held"


class ProfitMetric(str, Enum):
    PNL_PCT = "pnl_pct"
    PNL_ABS = "pnl_abs"


class VolumeMetric(str, Enum):
    CURRENT_VOLUME = "current_volume"
    VOLUME_RATIO = "volume_ratio"


class Indicator(str, Enum):
    RSI = "RSI"
    SMA20 = "SMA20"
    SMA50 = "SMA50"
    SMA200 = "SMA200"
    EMA12 = "EMA12"
    EMA26 = "EMA26"
    MACD = "MACD"
    MACD_SIGNAL = "MACD_SIGNAL"
    MACD_HISTOGRAM = "MACD_HISTOGRAM"
    ADX = "ADX"
    ATR = "ATR"
    VWAP = "VWAP"
    BB_UPPER = "BB_UPPER"
    BB_LOWER = "BB_LOWER"
    STOCH_K = "STOCH_K"
    STOCH_D = "STOCH_D"
    CCI = "CCI"
    MFI = "MFI"


@dataclass(frozen=True)
class PriceCondition:
    type: ClassVar[str] = "price"

    operator: PriceOperator
    value: float


@dataclass(frozen=True)
class IndicatorCondition:
    type: ClassVar[str] = "indicator"

    indicator: Indicator
    operator: PriceOperator
    value: float


@dataclass(frozen=True)
class PriceVsIndicatorCondition:
    """Current price compared against a named indicator level."""

    type: ClassVar[str] = "price_indicator"

    indicator: Indicator
    operator: PriceOperator


@dataclass(frozen=True)
class TimeCondition:
    type: ClassVar[str] = "time"

    metric: TimeMetric
    operator: Comparator
    value: float


@dataclass(frozen=True)
class ProfitCondition:
    type: ClassVar[str] = "profit"

    metric: ProfitMetric
    operator: Comparator
    value: float


@dataclass(frozen=True)
class VolumeCondition:
    type: ClassVar[str] = "volume"

    metric: VolumeMetric
    operator: Comparator
    value: float


@dataclass(frozen=True)
class AllCondition:
    type: ClassVar[str] = "all"

    conditions: tuple["ExitCondition", ...]


@dataclass(frozen=True)
class AnyCondition:
    type: ClassVar[str] = "any"

    conditions: tuple["ExitCondition", ...]


ExitCondition = Union[
    PriceCondition,
    IndicatorCondition,
    PriceVsIndicatorCondition,
    TimeCondition,
    ProfitCondition,
    VolumeCondition,
    AllCondition,
    AnyCondition,
]


@dataclass(frozen=True)
class ExitContext:
    """Point-in-time view of an open position.

    ``pnl_pct`` is expressed in percent (``10.0`` means +10%), matching the
    units used by ``profit > 10%`` rules.
    """

    current_price: float
    entry_price: float
    pnl_pct: float
    pnl_abs: float
    days_held: float
    hours_held: float
    previous_price: Optional[float] = None
    indicators: Mapping[str, float] = field(default_factory=dict)
    previous_indicators: Mapping[str, float] = field(default_factory=dict)
    volume: Optional[float] = None
    avg_volume: Optional[float] = None


@dataclass(frozen=True)
class ExitEvaluation:
    should_exit: bool
    triggered: list[str]


def condition_to_dict(condition: ExitCondition) -> dict[str, Any]:
    if isinstance(condition, (AllCondition, AnyCondition)):
        return {
            "type": condition.type,
            "conditions": [condition_to_dict(child) for child in condition.conditions],
        }
    payload: dict[str, Any] = {"type": condition.type}
    if isinstance(condition, (IndicatorCondition, PriceVsIndicatorCondition)):
        payload["indicator"] = condition.indicator.value
    if isinstance(condition, (TimeCondition, ProfitCondition, VolumeCondition)):
        payload["metric"] = condition.metric.value
    payload["operator"] = condition.operator.value
    if not isinstance(condition, PriceVsIndicatorCondition):
        payload["value"] = condition.value
    return payload


def condition_from_dict(data: Mapping[str, Any]) -> ExitCondition:
    kind = data.get("type")
    try:
        if kind == "price":
            return PriceCondition(PriceOperator(data["operator"]), float(data["value"]))
        if kind == "indicator":
            return IndicatorCondition(
                Indicator(data["indicator"]),
                PriceOperator(data["operator"]),
                float(data["value"]),
            )
        if kind == "price_indicator":
            return PriceVsIndicatorCondition(Indicator(data["indicator"]), PriceOperator(data["operator"]))
        if kind == "time":
            return TimeCondition(TimeMetric(data["metric"]), Comparator(data["operator"]), float(data["value"]))
        if kind == "profit":
            return ProfitCondition(ProfitMetric(data["metric"]), Comparator(data["operator"]), float(data["value"]))
        if kind == "volume":
            return VolumeCondition(VolumeMetric(data["metric"]), Comparator(data["operator"]), float(data["value"]))
        if kind == "all":
            return AllCondition(tuple(condition_from_dict(child) for child in data["conditions"]))
        if kind == "any":
            return AnyCondition(tuple(condition_from_dict(child) for child in data["conditions"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid {kind} condition: {dict(data)}") from exc
    raise ValueError(f"Unknown condition type: {kind}")

"""Evaluate and render exit conditions."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from equity_bot.exit_conditions.models import (
    AllCondition,
    AnyCondition,
    Comparator,
    ExitCondition,
    ExitContext,
    ExitEvaluation,
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

_COMPARATOR_SYMBOLS = {
    Comparator.GT: ">",
    Comparator.LT: "<",
    Comparator.GTE: ">=",
    Comparator.LTE: "<=",
    Comparator.EQ: "=",
}

_TIME_LABELS = {
    TimeMetric.DAYS_HELD: "Days held",
    TimeMetric.HOURS_HELD: "Hours held",
}

_VOLUME_LABELS = {
    VolumeMetric.CURRENT_VOLUME: "Volume",
    VolumeMetric.VOLUME_RATIO: "Volume ratio",
}


def evaluate(condition: ExitCondition, context: ExitContext) -> bool:
    if isinstance(condition, PriceCondition):
        return _crosses_or_compares(
            condition.operator, context.current_price, context.previous_price, condition.value
        )
    if isinstance(condition, IndicatorCondition):
        return _evaluate_indicator(condition, context)
    if isinstance(condition, PriceVsIndicatorCondition):
        return _evaluate_price_vs_indicator(condition, context)
    if isinstance(condition, TimeCondition):
        actual = context.days_held if condition.metric == TimeMetric.DAYS_HELD else context.hours_held
        return compare(actual, condition.operator, condition.value)
    if isinstance(condition, ProfitCondition):
        actual = context.pnl_pct if condition.metric == ProfitMetric.PNL_PCT else context.pnl_abs
        return compare(actual, condition.operator, condition.value)
    if isinstance(condition, VolumeCondition):
        return _evaluate_volume(condition, context)
    if isinstance(condition, AllCondition):
        return all(evaluate(child, context) for child in condition.conditions)
    if isinstance(condition, AnyCondition):
        return any(evaluate(child, context) for child in condition.conditions)
    logger.warning("Unknown exit condition %r", condition)
    return False


def evaluate_all(conditions: Iterable[ExitCondition], context: ExitContext) -> ExitEvaluation:
    triggered = [format_condition(condition) for condition in conditions if evaluate(condition, context)]
    return ExitEvaluation(should_exit=bool(triggered), triggered=triggered)


def compare(actual: float, operator: Comparator, target: float) -> bool:
    if operator == Comparator.GT:
        return actual > target
    if operator == Comparator.LT:
        return actual < target
    if operator == Comparator.GTE:
        return actual >= target
    if operator == Comparator.LTE:
        return actual <= target
    if operator == Comparator.EQ:
        return actual == target
    return False


def _crosses_or_compares(
    operator: PriceOperator,
    current: float,
    previous: Optional[float],
    level: float,
) -> bool:
    if operator == PriceOperator.ABOVE:
        return current > level
    if operator == PriceOperator.BELOW:
        return current < level
    if previous is None:
        return False
    if operator == PriceOperator.CROSSES_ABOVE:
        return previous <= level and current > level
    if operator == PriceOperator.CROSSES_BELOW:
        return previous >= level and current < level
    return False


def _evaluate_indicator(condition: IndicatorCondition, context: ExitContext) -> bool:
    current = context.indicators.get(condition.indicator.value)
    if current is None:
        logger.debug("Indicator %s not available in context", condition.indicator.value)
        return False
    previous = context.previous_indicators.get(condition.indicator.value)
    return _crosses_or_compares(condition.operator, current, previous, condition.value)


def _evaluate_price_vs_indicator(condition: PriceVsIndicatorCondition, context: ExitContext) -> bool:
    level = context.indicators.get(condition.indicator.value)
    if level is None:
        logger.debug("Indicator %s not available in context", condition.indicator.value)
        return False
    if condition.operator in (PriceOperator.ABOVE, PriceOperator.BELOW):
        return _crosses_or_compares(condition.operator, context.current_price, None, level)

    previous_level = context.previous_indicators.get(condition.indicator.value)
    if context.previous_price is None or previous_level is None:
        return False
    if condition.operator == PriceOperator.CROSSES_ABOVE:
        return context.previous_price <= previous_level and context.current_price > level
    return context.previous_price >= previous_level and context.current_price < level


def _evaluate_volume(condition: VolumeCondition, context: ExitContext) -> bool:
    actual: Optional[float] = None
    if condition.metric == VolumeMetric.CURRENT_VOLUME:
        actual = context.volume
    elif context.volume is not None and context.avg_volume:
        if context.avg_volume > 0:
            actual = context.volume / context.avg_volume
    if actual is None:
        logger.debug("Volume data not available for %s", condition.metric.value)
        return False
    return compare(actual, condition.operator, condition.value)


def format_condition(condition: ExitCondition) -> str:
    if isinstance(condition, PriceCondition):
        return f"Price {_operator_text(condition.operator)} ${condition.value:.2f}"
    if isinstance(condition, IndicatorCondition):
        return (
            f"{condition.indicator.value} {_operator_text(condition.operator)} "
            f"{format_number(condition.value)}"
        )
    if isinstance(condition, PriceVsIndicatorCondition):
        return f"Close {_operator_text(condition.operator)} {condition.indicator.value}"
    if isinstance(condition, TimeCondition):
        return (
            f"{_TIME_LABELS[condition.metric]} {_COMPARATOR_SYMBOLS[condition.operator]} "
            f"{format_number(condition.value)}"
        )
    if isinstance(condition, ProfitCondition):
        symbol = _COMPARATOR_SYMBOLS[condition.operator]
        value = format_number(condition.value)
        if condition.metric == ProfitMetric.PNL_PCT:
            return f"P&L% {symbol} {value}%"
        return f"P&L {symbol} ${value}"
    if isinstance(condition, VolumeCondition):
        return (
            f"{_VOLUME_LABELS[condition.metric]} {_COMPARATOR_SYMBOLS[condition.operator]} "
            f"{format_number(condition.value)}"
        )
    if isinstance(condition, AllCondition):
        return f"ALL: [{', '.join(format_condition(child) for child in condition.conditions)}]"
    if isinstance(condition, AnyCondition):
        return f"ANY: [{', '.join(format_condition(child) for child in condition.conditions)}]"
    return "Unknown condition"


def format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _operator_text(operator: PriceOperator) -> str:
    return operator.value.replace("_", " ")

"""Exit-condition rules: data model, parser and evaluator."""

from equity_bot.exit_conditions.evaluator import compare, evaluate, evaluate_all, format_condition
from equity_bot.exit_conditions.models import (
    AllCondition,
    AnyCondition,
    Comparator,
    ExitCondition,
    ExitContext,
    ExitEvaluation,
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
    condition_from_dict,
    condition_to_dict,
)
from equity_bot.exit_conditions.parser import parse, resolve_indicator

__all__ = [
    "AllCondition",
    "AnyCondition",
    "Comparator",
    "ExitCondition",
    "ExitContext",
    "ExitEvaluation",
    "Indicator",
    "IndicatorCondition",
    "PriceCondition",
    "PriceOperator",
    "PriceVsIndicatorCondition",
    "ProfitCondition",
    "ProfitMetric",
    "TimeCondition",
    "TimeMetric",
    "VolumeCondition",
    "VolumeMetric",
    "compare",
    "condition_from_dict",
    "condition_to_dict",
    "evaluate",
    "evaluate_all",
    "format_condition",
    "parse",
    "resolve_indicator",
]

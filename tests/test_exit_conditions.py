import pytest

from equity_bot.exit_conditions import (
    AllCondition,
    AnyCondition,
    Comparator,
    ExitContext,
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
    evaluate,
    evaluate_all,
    format_condition,
)


def _context(**overrides):
    values = dict(
        current_price=150.0,
        entry_price=140.0,
        pnl_pct=7.14,
        pnl_abs=100.0,
        days_held=5,
        hours_held=120,
    )
    values.update(overrides)
    return ExitContext(**values)


def test_price_above_and_below():
    assert evaluate(PriceCondition(PriceOperator.ABOVE, 149), _context())
    assert not evaluate(PriceCondition(PriceOperator.BELOW, 149), _context())
    assert not evaluate(PriceCondition(PriceOperator.ABOVE, 150), _context())


def test_crosses_requires_previous_price():
    condition = PriceCondition(PriceOperator.CROSSES_ABOVE, 149)
    assert evaluate(condition, _context(current_price=150.0)) is False
    assert evaluate(condition, _context(current_price=1000.0)) is False
    assert evaluate(condition, _context(current_price=150.0, previous_price=148.0)) is True
    assert evaluate(condition, _context(current_price=150.0, previous_price=149.5)) is False


def test_crosses_below_from_level():
    condition = PriceCondition(PriceOperator.CROSSES_BELOW, 150)
    assert evaluate(condition, _context(current_price=149.0, previous_price=150.0))
    assert not evaluate(condition, _context(current_price=151.0, previous_price=150.0))


def test_indicator_missing_is_false():
    condition = IndicatorCondition(Indicator.RSI, PriceOperator.BELOW, 30)
    assert evaluate(condition, _context()) is False
    assert evaluate(condition, _context(indicators={"RSI": 25.0})) is True


def test_indicator_cross_uses_previous_indicator_value():
    condition = IndicatorCondition(Indicator.RSI, PriceOperator.CROSSES_ABOVE, 70)
    assert not evaluate(condition, _context(indicators={"RSI": 72.0}))
    assert evaluate(condition, _context(indicators={"RSI": 72.0}, previous_indicators={"RSI": 68.0}))
    assert not evaluate(condition, _context(indicators={"RSI": 72.0}, previous_indicators={"RSI": 71.0}))


def test_price_versus_indicator():
    below = PriceVsIndicatorCondition(Indicator.SMA50, PriceOperator.BELOW)
    assert evaluate(below, _context(current_price=95.0, indicators={"SMA50": 100.0}))
    assert not evaluate(below, _context(current_price=105.0, indicators={"SMA50": 100.0}))
    assert not evaluate(below, _context(current_price=95.0))

    crosses = PriceVsIndicatorCondition(Indicator.SMA50, PriceOperator.CROSSES_BELOW)
    context = _context(
        current_price=98.0,
        previous_price=101.0,
        indicators={"SMA50": 100.0},
        previous_indicators={"SMA50": 100.0},
    )
    assert evaluate(crosses, context)


def test_time_profit_and_volume():
    assert evaluate(TimeCondition(TimeMetric.DAYS_HELD, Comparator.GTE, 5), _context())
    assert not evaluate(TimeCondition(TimeMetric.HOURS_HELD, Comparator.GT, 120), _context())
    assert evaluate(ProfitCondition(ProfitMetric.PNL_PCT, Comparator.GT, 7), _context())
    assert evaluate(ProfitCondition(ProfitMetric.PNL_ABS, Comparator.EQ, 100), _context())

    ratio = VolumeCondition(VolumeMetric.VOLUME_RATIO, Comparator.GT, 2)
    assert evaluate(ratio, _context(volume=3000.0, avg_volume=1000.0))
    assert not evaluate(ratio, _context(volume=3000.0, avg_volume=0.0))
    assert not evaluate(ratio, _context(volume=3000.0))
    assert evaluate(VolumeCondition(VolumeMetric.CURRENT_VOLUME, Comparator.LT, 5000), _context(volume=3000.0))


def test_composites():
    high = PriceCondition(PriceOperator.ABOVE, 100)
    low = PriceCondition(PriceOperator.BELOW, 100)
    assert evaluate(AllCondition((high, high)), _context())
    assert not evaluate(AllCondition((high, low)), _context())
    assert evaluate(AnyCondition((low, high)), _context())
    assert not evaluate(AnyCondition((low, low)), _context())


def test_evaluate_all_lists_triggered_descriptions():
    conditions = [
        PriceCondition(PriceOperator.ABOVE, 150),
        ProfitCondition(ProfitMetric.PNL_PCT, Comparator.GT, 5),
        TimeCondition(TimeMetric.DAYS_HELD, Comparator.GT, 30),
    ]
    result = evaluate_all(conditions, _context())
    assert result.should_exit is True
    assert result.triggered == ["P&L% > 5%"]

    assert evaluate_all([], _context()).should_exit is False


def test_format_condition_text():
    assert format_condition(PriceCondition(PriceOperator.ABOVE, 150)) == "Price above $150.00"
    assert format_condition(PriceCondition(PriceOperator.CROSSES_BELOW, 99.5)) == "Price crosses below $99.50"
    assert format_condition(IndicatorCondition(Indicator.RSI, PriceOperator.BELOW, 30)) == "RSI below 30"
    assert format_condition(PriceVsIndicatorCondition(Indicator.SMA200, PriceOperator.ABOVE)) == "Close above SMA200"
    assert format_condition(TimeCondition(TimeMetric.DAYS_HELD, Comparator.GT, 30)) == "Days held > 30"
    assert format_condition(ProfitCondition(ProfitMetric.PNL_ABS, Comparator.GT, 500)) == "P&L > $500"
    assert format_condition(VolumeCondition(VolumeMetric.VOLUME_RATIO, Comparator.GT, 2)) == "Volume ratio > 2"
    nested = AnyCondition(
        (
            IndicatorCondition(Indicator.RSI, PriceOperator.ABOVE, 70),
            ProfitCondition(ProfitMetric.PNL_PCT, Comparator.GT, 10),
        )
    )
    assert format_condition(nested) == "ANY: [RSI above 70, P&L% > 10%]"


def test_condition_dict_round_trip():
    condition = AllCondition(
        (
            IndicatorCondition(Indicator.RSI, PriceOperator.BELOW, 30),
            PriceVsIndicatorCondition(Indicator.SMA50, PriceOperator.ABOVE),
            AnyCondition((TimeCondition(TimeMetric.DAYS_HELD, Comparator.GT, 10),)),
        )
    )
    payload = condition_to_dict(condition)
    assert payload["type"] == "all"
    assert payload["conditions"][0] == {"type": "indicator", "indicator": "RSI", "operator": "below", "value": 30}
    assert payload["conditions"][1] == {"type": "price_indicator", "indicator": "SMA50", "operator": "above"}
    assert condition_from_dict(payload) == condition


def test_condition_from_dict_rejects_bad_input():
    with pytest.raises(ValueError):
        condition_from_dict({"type": "teleport"})
    with pytest.raises(ValueError):
        condition_from_dict({"type": "indicator", "indicator": "NOPE", "operator": "below", "value": 1})
    with pytest.raises(ValueError):
        condition_from_dict({"type": "price", "operator": "above"})

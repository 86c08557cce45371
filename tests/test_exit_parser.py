from equity_bot.exit_conditions import (
    AllCondition,
    AnyCondition,
    Comparator,
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
    condition_to_dict,
    parse,
    resolve_indicator,
)


def test_parse_indicator_phrase():
    assert parse("RSI below 30") == [IndicatorCondition(Indicator.RSI, PriceOperator.BELOW, 30.0)]
    assert [condition_to_dict(c) for c in parse("RSI below 30")] == [
        {"type": "indicator", "indicator": "RSI", "operator": "below", "value": 30.0}
    ]


def test_parse_profit_percent():
    assert parse("profit > 10%") == [ProfitCondition(ProfitMetric.PNL_PCT, Comparator.GT, 10.0)]
    assert [condition_to_dict(c) for c in parse("profit > 10%")] == [
        {"type": "profit", "metric": "pnl_pct", "operator": "gt", "value": 10.0}
    ]


def test_parse_profit_absolute():
    assert parse("P&L >= $1,500") == [ProfitCondition(ProfitMetric.PNL_ABS, Comparator.GTE, 1500.0)]


def test_parse_empty_and_garbage():
    assert parse("") == []
    assert parse("   ") == []
    assert parse("sell when the moon is full") == []
    assert parse(None) == []


def test_parse_price_phrases():
    assert parse("price above $150") == [PriceCondition(PriceOperator.ABOVE, 150.0)]
    assert parse("Price crosses below 99.5") == [PriceCondition(PriceOperator.CROSSES_BELOW, 99.5)]
    assert parse("stop at $95") == [PriceCondition(PriceOperator.BELOW, 95.0)]


def test_parse_hold_phrases():
    assert parse("hold for 30 days") == [TimeCondition(TimeMetric.DAYS_HELD, Comparator.GT, 30.0)]
    assert parse("hold 12 hours") == [TimeCondition(TimeMetric.HOURS_HELD, Comparator.GT, 12.0)]
    assert parse("days held >= 10") == [TimeCondition(TimeMetric.DAYS_HELD, Comparator.GTE, 10.0)]


def test_parse_close_versus_indicator():
    assert parse("close below SMA50") == [PriceVsIndicatorCondition(Indicator.SMA50, PriceOperator.BELOW)]
    assert parse("close crosses above 200 SMA") == [
        PriceVsIndicatorCondition(Indicator.SMA200, PriceOperator.CROSSES_ABOVE)
    ]


def test_parse_volume():
    assert parse("volume ratio > 2") == [VolumeCondition(VolumeMetric.VOLUME_RATIO, Comparator.GT, 2.0)]
    assert parse("volume < 100,000") == [VolumeCondition(VolumeMetric.CURRENT_VOLUME, Comparator.LT, 100000.0)]


def test_parse_and_or_composites():
    (condition,) = parse("RSI above 70 and profit > 5%")
    assert condition == AllCondition(
        (
            IndicatorCondition(Indicator.RSI, PriceOperator.ABOVE, 70.0),
            ProfitCondition(ProfitMetric.PNL_PCT, Comparator.GT, 5.0),
        )
    )

    (condition,) = parse("price below 90 or hold for 20 days")
    assert isinstance(condition, AnyCondition)
    assert len(condition.conditions) == 2


def test_parse_and_binds_before_or_parts():
    (condition,) = parse("RSI above 70 or MACD below 0 and profit > 2%")
    assert isinstance(condition, AllCondition)
    first, second = condition.conditions
    assert isinstance(first, AnyCondition)
    assert second == ProfitCondition(ProfitMetric.PNL_PCT, Comparator.GT, 2.0)


def test_parse_composite_drops_unparseable_parts():
    assert parse("RSI above 70 and dance") == [IndicatorCondition(Indicator.RSI, PriceOperator.ABOVE, 70.0)]


def test_resolve_indicator_aliases():
    assert resolve_indicator("  SMA 200 ") == Indicator.SMA200
    assert resolve_indicator("Bollinger   Upper") == Indicator.BB_UPPER
    assert resolve_indicator("ema-26") == Indicator.EMA26
    assert resolve_indicator("unknown") is None

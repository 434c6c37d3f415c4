from __future__ import annotations

import pytest

from strategy_lab.dsl import (
    InvalidParameter,
    MovingAverageCrossRule,
    OscillatorThresholdRule,
    Strategy,
    TrendSignalCrossRule,
    UnsupportedRuleKind,
    ValidationError,
    normalize_strategy,
    parse_strategy_text,
    strategy_as_dict,
)


def test_normalize_sma_cross_strategy() -> None:
    strategy = normalize_strategy(
        {
            "name": "  Test SMA Strategy ",
            "rules": [
                {
                    "type": "sma_cross",
                    "params": {"fast": 5, "slow": 10, "enter": "fast_above", "exit": "fast_below"},
                }
            ],
        }
    )
    assert strategy.name == "Test SMA Strategy"
    assert strategy.combine == "any"
    rule = strategy.rules[0]
    assert isinstance(rule, MovingAverageCrossRule)
    assert (rule.fast, rule.slow) == (5, 10)
    assert rule.average == "sma"


def test_per_kind_defaults_are_filled() -> None:
    strategy = normalize_strategy(
        {"rules": [{"type": "ema_cross"}, {"type": "rsi_threshold"}, {"type": "macd_cross", "params": {}}]}
    )
    assert strategy.name == "Custom Strategy"

    cross, oscillator, trend = strategy.rules
    assert isinstance(cross, MovingAverageCrossRule)
    assert (cross.fast, cross.slow, cross.enter, cross.exit) == (10, 30, "fast_above", "fast_below")
    assert cross.average == "ema"

    assert isinstance(oscillator, OscillatorThresholdRule)
    assert (oscillator.period, oscillator.low, oscillator.high) == (14, 30.0, 70.0)
    assert (oscillator.enter, oscillator.exit) == ("long", "long")

    assert isinstance(trend, TrendSignalCrossRule)
    assert (trend.fast, trend.slow, trend.signal) == (12, 26, 9)
    assert (trend.enter, trend.exit) == ("bull", "bear")


def test_numeric_strings_are_coerced() -> None:
    strategy = normalize_strategy(
        {"rules": [{"type": "rsi_threshold", "params": {"period": "7", "low": " 25.5 ", "high": "80"}}]}
    )
    rule = strategy.rules[0]
    assert isinstance(rule, OscillatorThresholdRule)
    assert rule.period == 7
    assert rule.low == 25.5
    assert rule.high == 80.0


def test_null_params_fall_back_to_defaults() -> None:
    strategy = normalize_strategy({"rules": [{"type": "sma_cross", "params": {"fast": None, "slow": 50}}]})
    rule = strategy.rules[0]
    assert isinstance(rule, MovingAverageCrossRule)
    assert (rule.fast, rule.slow) == (10, 50)


def test_polarity_beside_params_is_honoured() -> None:
    strategy = normalize_strategy(
        {"rules": [{"type": "macd_cross", "params": {"fast": 8}, "enter": "bear", "exit": "bull"}]}
    )
    rule = strategy.rules[0]
    assert isinstance(rule, TrendSignalCrossRule)
    assert (rule.fast, rule.enter, rule.exit) == (8, "bear", "bull")


def test_long_short_aliases_read_the_same_on_enter_and_exit() -> None:
    strategy = normalize_strategy(
        {
            "rules": [
                {"type": "sma_cross", "params": {}, "enter": "short", "exit": "long"},
                {"type": "macd_cross", "params": {}, "enter": "LONG", "exit": "short"},
                {"type": "ema_cross", "params": {"enter": "above", "exit": "below"}},
            ]
        }
    )
    cross, trend, plain = strategy.rules
    assert isinstance(cross, MovingAverageCrossRule)
    assert (cross.enter, cross.exit) == ("fast_below", "fast_above")
    assert isinstance(trend, TrendSignalCrossRule)
    assert (trend.enter, trend.exit) == ("bull", "bear")
    assert isinstance(plain, MovingAverageCrossRule)
    assert (plain.enter, plain.exit) == ("fast_above", "fast_below")


def test_strategy_model_accepts_every_rule_kind() -> None:
    strategy = Strategy.model_validate(
        {
            "rules": [
                {"type": "sma_cross", "fast": 5, "slow": 20},
                {"type": "rsi_threshold", "period": 7},
                {"type": "macd_cross", "signal": 5},
            ]
        }
    )
    assert [type(rule) for rule in strategy.rules] == [
        MovingAverageCrossRule,
        OscillatorThresholdRule,
        TrendSignalCrossRule,
    ]
    assert strategy.name == "Custom Strategy"
    assert strategy.required_bars == 27


def test_unknown_rule_kind_is_rejected_not_dropped() -> None:
    with pytest.raises(UnsupportedRuleKind) as exc_info:
        normalize_strategy({"rules": [{"type": "sma_cross"}, {"type": "foo_bar", "params": {}}]})
    assert exc_info.value.kind == "foo_bar"
    assert isinstance(exc_info.value, ValidationError)


def test_missing_rule_type_is_unsupported() -> None:
    with pytest.raises(UnsupportedRuleKind):
        normalize_strategy({"rules": [{"params": {"fast": 3}}]})


@pytest.mark.parametrize("candidate", [None, "sma_cross", 42, ["rules"]])
def test_non_object_strategy_is_rejected(candidate: object) -> None:
    with pytest.raises(ValidationError, match="strategy_must_be_object"):
        normalize_strategy(candidate)


@pytest.mark.parametrize("candidate", [{}, {"rules": []}, {"name": "x", "rules": None}])
def test_strategy_without_rules_is_rejected(candidate: dict[str, object]) -> None:
    with pytest.raises(ValidationError, match="strategy_has_no_rules"):
        normalize_strategy(candidate)


def test_rules_must_be_a_list() -> None:
    with pytest.raises(ValidationError, match="strategy_rules_must_be_list"):
        normalize_strategy({"rules": {"type": "sma_cross"}})


@pytest.mark.parametrize(
    ("params", "field"),
    [
        ({"period": "abc"}, "period"),
        ({"period": 0}, "period"),
        ({"period": -3}, "period"),
        ({"period": 2.5}, "period"),
        ({"period": True}, "period"),
        ({"low": 120}, "low"),
        ({"high": "nan"}, "high"),
        ({"enter": "sideways"}, "enter"),
        ({"lookback": 5}, "lookback"),
    ],
)
def test_invalid_oscillator_params(params: dict[str, object], field: str) -> None:
    with pytest.raises(InvalidParameter) as exc_info:
        normalize_strategy({"rules": [{"type": "rsi_threshold", "params": params}]})
    assert exc_info.value.kind == "rsi_threshold"
    assert exc_info.value.field == field


def test_threshold_band_must_be_ordered() -> None:
    with pytest.raises(InvalidParameter):
        normalize_strategy({"rules": [{"type": "rsi_threshold", "params": {"low": 70, "high": 30}}]})


def test_negative_moving_average_period_is_rejected() -> None:
    with pytest.raises(InvalidParameter) as exc_info:
        normalize_strategy({"rules": [{"type": "ema_cross", "params": {"fast": "-5"}}]})
    assert exc_info.value.field == "fast"


def test_params_must_be_object() -> None:
    with pytest.raises(InvalidParameter) as exc_info:
        normalize_strategy({"rules": [{"type": "sma_cross", "params": [5, 10]}]})
    assert exc_info.value.field == "params"


def test_combine_mode() -> None:
    strategy = normalize_strategy({"combine": "ALL", "rules": [{"type": "sma_cross"}]})
    assert strategy.combine == "all"
    with pytest.raises(InvalidParameter):
        normalize_strategy({"combine": "xor", "rules": [{"type": "sma_cross"}]})


def test_required_bars_per_kind() -> None:
    strategy = normalize_strategy(
        {
            "rules": [
                {"type": "sma_cross", "params": {"fast": 5, "slow": 20}},
                {"type": "rsi_threshold", "params": {"period": 14}},
                {"type": "macd_cross"},
            ]
        }
    )
    assert [rule.required_bars for rule in strategy.rules] == [21, 16, 27]
    assert strategy.required_bars == 27


def test_parse_strategy_text_from_fenced_reply() -> None:
    text = """Here is your strategy:
    ```json
    {"name": "Momentum", "rules": [{"type": "macd_cross", "params": {"fast": 12, "slow": 26, "signal": 9}}]}
    ```
    """
    strategy = parse_strategy_text(text)
    assert strategy.name == "Momentum"
    assert isinstance(strategy.rules[0], TrendSignalCrossRule)


@pytest.mark.parametrize("text", ["hello world", "{not json}", "[1, 2, 3]"])
def test_parse_strategy_text_rejects_non_objects(text: str) -> None:
    with pytest.raises(ValidationError):
        parse_strategy_text(text)


def test_strategy_as_dict_spells_out_defaults() -> None:
    strategy = normalize_strategy({"name": "RSI", "rules": [{"type": "rsi_threshold"}]})
    assert strategy_as_dict(strategy) == {
        "name": "RSI",
        "combine": "any",
        "rules": [
            {
                "type": "rsi_threshold",
                "params": {"period": 14, "low": 30.0, "high": 70.0, "enter": "long", "exit": "long"},
            }
        ],
    }
    assert normalize_strategy(strategy_as_dict(strategy)) == strategy

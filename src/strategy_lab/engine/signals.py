"""Map DSL rules onto per-bar entry/exit signals."""

from __future__ import annotations

from typing import Sequence

from strategy_lab.dsl.schemas import (
    MovingAverageCrossRule,
    OscillatorThresholdRule,
    Strategy,
    TrendSignalCrossRule,
)
from strategy_lab.features.indicators import ema, macd, rsi, sma
from strategy_lab.types import Series, SignalSeries

AnyRule = MovingAverageCrossRule | OscillatorThresholdRule | TrendSignalCrossRule


def evaluate_strategy(
    strategy: Strategy,
    closes: Sequence[float],
) -> tuple[SignalSeries, list[str]]:
    """Evaluate every rule and combine their signals bar by bar."""
    warnings: list[str] = []
    per_rule: list[SignalSeries] = []
    for rule in strategy.rules:
        if len(closes) < rule.required_bars:
            warnings.append(f"insufficient_data:{rule.type}:{len(closes)}<{rule.required_bars}")
        per_rule.append(evaluate_rule(rule, closes))

    reduce = any if strategy.combine == "any" else all
    combined = SignalSeries(
        enter=[reduce(signals.enter[idx] for signals in per_rule) for idx in range(len(closes))],
        exit=[reduce(signals.exit[idx] for signals in per_rule) for idx in range(len(closes))],
    )
    return combined, warnings


def evaluate_rule(rule: AnyRule, closes: Sequence[float]) -> SignalSeries:
    """Return enter/exit flags for one rule; all False during warm-up."""
    if len(closes) < rule.required_bars:
        return SignalSeries.empty(len(closes))
    if isinstance(rule, MovingAverageCrossRule):
        return _moving_average_cross(rule, closes)
    if isinstance(rule, OscillatorThresholdRule):
        return _oscillator_threshold(rule, closes)
    if isinstance(rule, TrendSignalCrossRule):
        return _trend_signal_cross(rule, closes)
    raise TypeError(f"unsupported_rule_model: {type(rule).__name__}")


def crosses_above(a: Series, b: Series, idx: int) -> bool:
    """True when ``a`` moves from at-or-below ``b`` to strictly above it at ``idx``."""
    if idx < 1:
        return False
    prev_a, prev_b, cur_a, cur_b = a[idx - 1], b[idx - 1], a[idx], b[idx]
    if prev_a is None or prev_b is None or cur_a is None or cur_b is None:
        return False
    return prev_a <= prev_b and cur_a > cur_b


def crosses_below(a: Series, b: Series, idx: int) -> bool:
    """True when ``a`` moves from at-or-above ``b`` to strictly below it at ``idx``."""
    if idx < 1:
        return False
    prev_a, prev_b, cur_a, cur_b = a[idx - 1], b[idx - 1], a[idx], b[idx]
    if prev_a is None or prev_b is None or cur_a is None or cur_b is None:
        return False
    return prev_a >= prev_b and cur_a < cur_b


def _moving_average_cross(rule: MovingAverageCrossRule, closes: Sequence[float]) -> SignalSeries:
    average = sma if rule.average == "sma" else ema
    fast = average(closes, rule.fast)
    slow = average(closes, rule.slow)
    up = [crosses_above(fast, slow, idx) for idx in range(len(closes))]
    down = [crosses_below(fast, slow, idx) for idx in range(len(closes))]
    return SignalSeries(
        enter=up if rule.enter == "fast_above" else down,
        exit=up if rule.exit == "fast_above" else down,
    )


def _oscillator_threshold(rule: OscillatorThresholdRule, closes: Sequence[float]) -> SignalSeries:
    values = rsi(closes, rule.period)
    low: Series = [rule.low] * len(closes)
    high: Series = [rule.high] * len(closes)
    indices = range(len(closes))
    # long: buy the recovery out of oversold, sell the push into overbought
    if rule.enter == "long":
        enter = [crosses_above(values, low, idx) for idx in indices]
    else:
        enter = [crosses_below(values, high, idx) for idx in indices]
    if rule.exit == "long":
        exit_ = [crosses_above(values, high, idx) for idx in indices]
    else:
        exit_ = [crosses_below(values, low, idx) for idx in indices]
    return SignalSeries(enter=enter, exit=exit_)


def _trend_signal_cross(rule: TrendSignalCrossRule, closes: Sequence[float]) -> SignalSeries:
    lines = macd(closes, rule.fast, rule.slow, rule.signal)
    bull = [crosses_above(lines.macd, lines.signal, idx) for idx in range(len(closes))]
    bear = [crosses_below(lines.macd, lines.signal, idx) for idx in range(len(closes))]
    return SignalSeries(
        enter=bull if rule.enter == "bull" else bear,
        exit=bull if rule.exit == "bull" else bear,
    )

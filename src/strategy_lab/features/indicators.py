"""Indicator computation over closing-price sequences.

Every function returns a list aligned 1:1 with its input. Positions inside
the warm-up window hold ``None`` rather than NaN, so comparisons against an
undefined value fail loudly instead of silently evaluating to False.
Periods are validated by the DSL layer; these functions assume ``period >= 1``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from strategy_lab.types import Series


@dataclass(slots=True, frozen=True)
class MacdLines:
    """MACD line, its signal line and the histogram between them."""

    macd: Series
    signal: Series
    histogram: Series


def sma(values: Sequence[float], period: int) -> Series:
    """Simple moving average using a running window sum (O(n))."""
    out: Series = []
    window_sum = 0.0
    for idx, value in enumerate(values):
        window_sum += value
        if idx >= period:
            window_sum -= values[idx - period]
        out.append(window_sum / period if idx >= period - 1 else None)
    return out


def ema(values: Sequence[float], period: int) -> Series:
    """Exponential moving average seeded with the first raw value.

    The recursion runs from index 0, but values before ``period - 1`` are
    reported as undefined to line up with :func:`sma`.
    """
    raw = _ema_raw(values, period)
    return [value if idx >= period - 1 else None for idx, value in enumerate(raw)]


def macd(
    values: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MacdLines:
    """MACD line (EMA fast - EMA slow), signal EMA and histogram."""
    ema_fast = ema(values, fast)
    ema_slow = ema(values, slow)
    macd_line: Series = [
        f - s if f is not None and s is not None else None for f, s in zip(ema_fast, ema_slow)
    ]
    # undefined MACD values feed the signal EMA as zeros
    signal_line = ema([value if value is not None else 0.0 for value in macd_line], signal)
    histogram: Series = [
        m - s if m is not None and s is not None else None for m, s in zip(macd_line, signal_line)
    ]
    return MacdLines(macd=macd_line, signal=signal_line, histogram=histogram)


def rsi(values: Sequence[float], period: int = 14) -> Series:
    """Wilder's relative strength index.

    The first ``period`` day-over-day changes seed simple averages of gains
    and losses; the first defined value sits at index ``period``. Later
    values use Wilder's recursive smoothing.
    """
    out: Series = [None] * len(values)
    if len(values) <= period:
        return out

    gain_sum = 0.0
    loss_sum = 0.0
    for idx in range(1, period + 1):
        change = values[idx] - values[idx - 1]
        gain_sum += max(change, 0.0)
        loss_sum += max(-change, 0.0)
    avg_gain = gain_sum / period
    avg_loss = loss_sum / period
    out[period] = _rsi_value(avg_gain, avg_loss)

    for idx in range(period + 1, len(values)):
        change = values[idx] - values[idx - 1]
        avg_gain = (avg_gain * (period - 1) + max(change, 0.0)) / period
        avg_loss = (avg_loss * (period - 1) + max(-change, 0.0)) / period
        out[idx] = _rsi_value(avg_gain, avg_loss)
    return out


def _ema_raw(values: Sequence[float], period: int) -> list[float]:
    k = 2.0 / (period + 1)
    out: list[float] = []
    current = 0.0
    for idx, value in enumerate(values):
        current = value if idx == 0 else value * k + current * (1.0 - k)
        out.append(current)
    return out


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0.0:
        # no movement at all reads as neutral, gains without losses as 100
        return 50.0 if avg_gain == 0.0 else 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)

"""Flat/long position state machine driven by per-bar signals."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from strategy_lab.config import EndOfSeriesPolicy
from strategy_lab.types import Bar, ExitReason, OpenPosition, PositionSide, SignalSeries, Trade


@dataclass(slots=True)
class PositionLog:
    """Closed trades plus the position still open after the last bar, if any."""

    trades: list[Trade] = field(default_factory=list)
    open_position: OpenPosition | None = None


@dataclass(slots=True)
class _Holding:
    entry_index: int
    entry_price: float


def simulate_positions(
    bars: Sequence[Bar],
    signals: SignalSeries,
    *,
    same_bar_reentry: bool = True,
    end_of_series: EndOfSeriesPolicy = EndOfSeriesPolicy.MARK_TO_MARKET,
) -> PositionLog:
    """Walk the bars once, exiting before entering on every bar.

    Fills happen at the bar close. While long, further entry signals are
    ignored. With ``same_bar_reentry`` disabled, a bar that closed a trade
    cannot also open one.
    """
    if len(signals) != len(bars):
        raise ValueError(f"signal_length_mismatch: {len(signals)} != {len(bars)}")

    log = PositionLog()
    state: PositionSide = "FLAT"
    holding: _Holding | None = None

    for idx, bar in enumerate(bars):
        exited_this_bar = False
        if state == "LONG" and holding is not None and signals.exit[idx] and idx > holding.entry_index:
            log.trades.append(_close(bars, holding, idx, reason="signal"))
            holding = None
            state = "FLAT"
            exited_this_bar = True

        if state == "FLAT" and signals.enter[idx] and (same_bar_reentry or not exited_this_bar):
            holding = _Holding(entry_index=idx, entry_price=bar.close)
            state = "LONG"

    if holding is None:
        return log

    last_idx = len(bars) - 1
    if end_of_series == EndOfSeriesPolicy.LIQUIDATE and last_idx > holding.entry_index:
        log.trades.append(_close(bars, holding, last_idx, reason="end_of_series"))
        return log

    mark = bars[last_idx].close
    log.open_position = OpenPosition(
        entry_index=holding.entry_index,
        entry_date=bars[holding.entry_index].date.isoformat(),
        entry_price=holding.entry_price,
        mark_price=mark,
        unrealized_pct=trade_return_pct(holding.entry_price, mark),
    )
    return log


def trade_return_pct(entry_price: float, exit_price: float) -> float:
    """Percentage return of a long round trip."""
    return (exit_price - entry_price) / entry_price * 100.0


def _close(bars: Sequence[Bar], holding: _Holding, idx: int, *, reason: ExitReason) -> Trade:
    exit_price = bars[idx].close
    return Trade(
        entry_index=holding.entry_index,
        exit_index=idx,
        entry_date=bars[holding.entry_index].date.isoformat(),
        exit_date=bars[idx].date.isoformat(),
        entry_price=holding.entry_price,
        exit_price=exit_price,
        return_pct=trade_return_pct(holding.entry_price, exit_price),
        bars_held=idx - holding.entry_index,
        exit_reason=reason,
    )

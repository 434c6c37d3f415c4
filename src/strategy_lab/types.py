"""Shared domain types for the backtest engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Literal

PositionSide = Literal["FLAT", "LONG"]
ExitReason = Literal["signal", "end_of_series"]

# One value per bar; None marks the warm-up window where the indicator is undefined.
Series = list[float | None]


@dataclass(slots=True, frozen=True)
class Bar:
    """One trading day for one instrument."""

    date: date
    open: float
    high: float
    low: float
    close: float
    volume: int
    vwap: float | None = None
    transactions: int | None = None


@dataclass(slots=True)
class SignalSeries:
    """Per-bar entry/exit flags aligned with the bar sequence."""

    enter: list[bool]
    exit: list[bool]

    @classmethod
    def empty(cls, length: int) -> SignalSeries:
        return cls(enter=[False] * length, exit=[False] * length)

    def __len__(self) -> int:
        return len(self.enter)


@dataclass(slots=True, frozen=True)
class Trade:
    """Closed long trade with realized return."""

    entry_index: int
    exit_index: int
    entry_date: str
    exit_date: str
    entry_price: float
    exit_price: float
    return_pct: float
    bars_held: int
    exit_reason: ExitReason = "signal"


@dataclass(slots=True, frozen=True)
class OpenPosition:
    """Position still held at the last bar, marked to its close."""

    entry_index: int
    entry_date: str
    entry_price: float
    mark_price: float
    unrealized_pct: float


@dataclass(slots=True)
class EquityPoint:
    """Cumulative return index at one bar close."""

    date: str
    equity: float
    in_market: bool


@dataclass(slots=True)
class Stats:
    """Trade-level summary of one run."""

    total_return_pct: float = 0.0
    trades: int = 0
    win_rate_pct: float = 0.0
    avg_trade_pct: float = 0.0


@dataclass(slots=True)
class BacktestResult:
    """Result bundle for one strategy over one bar sequence."""

    name: str
    stats: Stats = field(default_factory=Stats)
    trades: list[Trade] = field(default_factory=list)
    equity: list[EquityPoint] = field(default_factory=list)
    open_position: OpenPosition | None = None
    warnings: list[str] = field(default_factory=list)

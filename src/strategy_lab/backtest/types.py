"""Shared types for the backtest workflow."""

from __future__ import annotations

from dataclasses import dataclass

from strategy_lab.config import EndOfSeriesPolicy, Settings


@dataclass(slots=True, frozen=True)
class BacktestConfig:
    """Runtime parameters for one backtest run."""

    equity_base: float = 100.0
    same_bar_reentry: bool = True
    end_of_series: EndOfSeriesPolicy = EndOfSeriesPolicy.MARK_TO_MARKET

    @classmethod
    def from_settings(cls, settings: Settings) -> BacktestConfig:
        return cls(
            equity_base=settings.equity_base,
            same_bar_reentry=settings.same_bar_reentry,
            end_of_series=settings.end_of_series,
        )

"""Equity curve, summary statistics and serialization for backtest results."""

from __future__ import annotations

from statistics import fmean
from typing import Iterable, Sequence

from strategy_lab.types import BacktestResult, Bar, EquityPoint, OpenPosition, Stats, Trade


def build_equity_curve(
    bars: Sequence[Bar],
    trades: Sequence[Trade],
    open_position: OpenPosition | None = None,
    *,
    base: float = 100.0,
) -> list[EquityPoint]:
    """Build one cumulative return point per bar.

    A bar counts as in-market when a position was carried from the previous
    close into its close. Those bars compound by the close-over-close
    return; every other bar carries the index forward unchanged.
    """
    in_market = [False] * len(bars)
    for trade in trades:
        for idx in range(trade.entry_index + 1, trade.exit_index + 1):
            in_market[idx] = True
    if open_position is not None:
        for idx in range(open_position.entry_index + 1, len(bars)):
            in_market[idx] = True

    points: list[EquityPoint] = []
    equity = base
    for idx, bar in enumerate(bars):
        if in_market[idx]:
            equity *= bar.close / bars[idx - 1].close
        points.append(EquityPoint(date=bar.date.isoformat(), equity=equity, in_market=in_market[idx]))
    return points


def compute_stats(
    trades: Sequence[Trade],
    equity_curve: Sequence[EquityPoint],
    *,
    base: float = 100.0,
) -> Stats:
    """Summarize closed trades; every field is 0 when there is nothing to summarize."""
    total_return_pct = 0.0
    if equity_curve and base > 0:
        total_return_pct = (equity_curve[-1].equity / base - 1.0) * 100.0

    if not trades:
        return Stats(total_return_pct=total_return_pct)

    returns = [trade.return_pct for trade in trades]
    win_count = sum(1 for value in returns if value > 0)
    return Stats(
        total_return_pct=total_return_pct,
        trades=len(trades),
        win_rate_pct=win_count / len(trades) * 100.0,
        avg_trade_pct=fmean(returns),
    )


def compute_drawdown(equity_curve: Sequence[EquityPoint]) -> dict[str, float | int | None]:
    """Max drawdown of the equity index and bars needed to recover from it."""
    max_dd, recovery_bars = _max_drawdown_with_recovery([point.equity for point in equity_curve])
    return {"max_drawdown_pct": max_dd, "max_drawdown_recovery_bars": recovery_bars}


def _max_drawdown_with_recovery(values: Sequence[float]) -> tuple[float, int | None]:
    if not values:
        return 0.0, None
    peak_value = values[0]
    peak_idx = 0
    max_dd = 0.0
    trough_idx = 0
    peak_idx_for_max_dd = 0

    for idx, value in enumerate(values):
        if value > peak_value:
            peak_value = value
            peak_idx = idx
        drawdown = 0.0 if peak_value <= 0 else (peak_value - value) / peak_value * 100.0
        if drawdown > max_dd:
            max_dd = drawdown
            trough_idx = idx
            peak_idx_for_max_dd = peak_idx

    if max_dd <= 0:
        return 0.0, 0

    recovery_bars: int | None = None
    target = values[peak_idx_for_max_dd]
    for idx in range(trough_idx + 1, len(values)):
        if values[idx] >= target:
            recovery_bars = idx - trough_idx
            break
    return max_dd, recovery_bars


def trades_as_rows(trades: Iterable[Trade]) -> list[dict[str, object]]:
    """Convert trades to serializable row dicts."""
    return [
        {
            "entryIndex": trade.entry_index,
            "exitIndex": trade.exit_index,
            "entryDate": trade.entry_date,
            "exitDate": trade.exit_date,
            "entryPrice": trade.entry_price,
            "exitPrice": trade.exit_price,
            "returnPct": trade.return_pct,
            "barsHeld": trade.bars_held,
            "exitReason": trade.exit_reason,
        }
        for trade in trades
    ]


def equity_points_as_rows(points: Iterable[EquityPoint]) -> list[dict[str, object]]:
    """Convert equity points to serializable row dicts."""
    return [
        {"date": point.date, "equity": point.equity, "inMarket": point.in_market}
        for point in points
    ]


def result_as_payload(result: BacktestResult) -> dict[str, object]:
    """Result in the camelCase shape consumed by HTTP and chart callers."""
    open_position: dict[str, object] | None = None
    if result.open_position is not None:
        position = result.open_position
        open_position = {
            "entryIndex": position.entry_index,
            "entryDate": position.entry_date,
            "entryPrice": position.entry_price,
            "markPrice": position.mark_price,
            "unrealizedPct": position.unrealized_pct,
        }
    return {
        "name": result.name,
        "stats": {
            "totalReturnPct": result.stats.total_return_pct,
            "trades": result.stats.trades,
            "winRatePct": result.stats.win_rate_pct,
            "avgTradePct": result.stats.avg_trade_pct,
        },
        "trades": trades_as_rows(result.trades),
        "equity": equity_points_as_rows(result.equity),
        "openPosition": open_position,
        "warnings": list(result.warnings),
    }

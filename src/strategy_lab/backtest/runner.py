"""Backtest runner: one strategy over one or many bar sequences."""

from __future__ import annotations

import json
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Mapping, Sequence

import pandas as pd  # type: ignore[import-untyped]

from strategy_lab.backtest.data import closes
from strategy_lab.backtest.metrics import (
    build_equity_curve,
    compute_drawdown,
    compute_stats,
    equity_points_as_rows,
    result_as_payload,
    trades_as_rows,
)
from strategy_lab.backtest.types import BacktestConfig
from strategy_lab.dsl.normalizer import normalize_strategy
from strategy_lab.dsl.schemas import Strategy
from strategy_lab.engine.positions import simulate_positions
from strategy_lab.engine.signals import evaluate_strategy
from strategy_lab.types import BacktestResult, Bar
from strategy_lab.utils.logging import get_logger, log_backtest_run


def run_backtest(
    strategy: Strategy | Mapping[str, object],
    bars: Sequence[Bar],
    config: BacktestConfig | None = None,
) -> BacktestResult:
    """Run one strategy over one date-ascending bar sequence.

    Raw strategy mappings are normalized first, so DSL errors surface before
    any indicator is computed. The run is a pure function of its inputs.
    """
    config = config or BacktestConfig()
    normalized = normalize_strategy(strategy)
    logger = get_logger("strategy_lab.backtest.runner")

    signals, warnings = evaluate_strategy(normalized, closes(bars))
    positions = simulate_positions(
        bars,
        signals,
        same_bar_reentry=config.same_bar_reentry,
        end_of_series=config.end_of_series,
    )
    equity = build_equity_curve(
        bars,
        positions.trades,
        positions.open_position,
        base=config.equity_base,
    )
    stats = compute_stats(positions.trades, equity, base=config.equity_base)

    for warning in warnings:
        logger.warning("backtest_warning", strategy=normalized.name, warning=warning)
    log_backtest_run(
        logger,
        strategy=normalized.name,
        bars=len(bars),
        trades=stats.trades,
        total_return_pct=stats.total_return_pct,
        open_position=positions.open_position is not None,
    )
    return BacktestResult(
        name=normalized.name,
        stats=stats,
        trades=positions.trades,
        equity=equity,
        open_position=positions.open_position,
        warnings=warnings,
    )


def run_batch(
    strategy: Strategy | Mapping[str, object],
    bars_by_symbol: Mapping[str, Sequence[Bar]],
    config: BacktestConfig | None = None,
    *,
    max_workers: int | None = None,
) -> dict[str, BacktestResult]:
    """Run the same strategy independently for every symbol.

    Runs share no state, so they are dispatched to a thread pool. Results
    keep the input symbol order; the first failing symbol re-raises.
    """
    normalized = normalize_strategy(strategy)
    symbols = list(bars_by_symbol)
    if not symbols:
        return {}

    workers = _resolve_workers(len(symbols), max_workers)
    logger = get_logger("strategy_lab.backtest.runner")
    logger.info("batch_started", strategy=normalized.name, symbols=len(symbols), workers=workers)

    if workers == 1:
        return {symbol: run_backtest(normalized, bars_by_symbol[symbol], config) for symbol in symbols}

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {
            symbol: pool.submit(run_backtest, normalized, bars_by_symbol[symbol], config)
            for symbol in symbols
        }
        return {symbol: futures[symbol].result() for symbol in symbols}


def write_backtest_artifacts(output_dir: Path, result: BacktestResult) -> None:
    """Persist trades, equity curve and the full result payload."""
    output_dir.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(trades_as_rows(result.trades), columns=_TRADE_COLUMNS).to_csv(
        output_dir / "trades.csv",
        index=False,
    )
    pd.DataFrame(equity_points_as_rows(result.equity), columns=_EQUITY_COLUMNS).to_csv(
        output_dir / "equity_curve.csv",
        index=False,
    )
    payload = result_as_payload(result)
    payload["risk"] = compute_drawdown(result.equity)
    (output_dir / "result.json").write_text(dump_payload(payload), encoding="utf-8")


def dump_payload(payload: object) -> str:
    """Stable JSON text: identical inputs always produce identical bytes."""
    return json.dumps(payload, ensure_ascii=True, indent=2, sort_keys=True)


_TRADE_COLUMNS = [
    "entryIndex",
    "exitIndex",
    "entryDate",
    "exitDate",
    "entryPrice",
    "exitPrice",
    "returnPct",
    "barsHeld",
    "exitReason",
]
_EQUITY_COLUMNS = ["date", "equity", "inMarket"]


def _resolve_workers(total: int, max_workers: int | None) -> int:
    if max_workers is None:
        return max(1, min(os.cpu_count() or 1, total))
    return max(1, min(max_workers, total))

"""Historical bar loading helpers for backtests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

import pandas as pd  # type: ignore[import-untyped]

from strategy_lab.types import Bar

_REQUIRED_COLUMNS = ["date", "open", "high", "low", "close", "volume"]
_OPTIONAL_COLUMNS = ["vwap", "transactions"]
_PRICE_COLUMNS = ["open", "high", "low", "close"]


def load_bars_csv(path: Path) -> list[Bar]:
    """Load daily bars from CSV and normalize schema."""
    df = pd.read_csv(path)
    return normalize_bars(df)


def load_bars_json(path: Path) -> list[Bar]:
    """Load daily bars from a JSON array of records."""
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError("bars_json_must_be_list")
    return bars_from_records(payload)


def bars_from_records(rows: Iterable[Mapping[str, Any]]) -> list[Bar]:
    """Normalize an iterable of row mappings into bars."""
    df = pd.DataFrame(list(rows))
    if df.empty:
        return []
    return normalize_bars(df)


def normalize_bars(df: pd.DataFrame) -> list[Bar]:
    """Validate/normalize a dataframe into date-ascending, de-duplicated bars."""
    if df.empty:
        return []
    missing = [col for col in _REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"missing_bar_columns: {','.join(missing)}")

    columns = _REQUIRED_COLUMNS + [col for col in _OPTIONAL_COLUMNS if col in df.columns]
    normalized = df[columns].copy()
    normalized["date"] = pd.to_datetime(normalized["date"], errors="coerce", utc=True).dt.date
    numeric_cols = _PRICE_COLUMNS + ["volume"] + [col for col in _OPTIONAL_COLUMNS if col in columns]
    for col in numeric_cols:
        normalized[col] = pd.to_numeric(normalized[col], errors="coerce")

    normalized = normalized.dropna(subset=_REQUIRED_COLUMNS)
    for col in _PRICE_COLUMNS:
        normalized = normalized[normalized[col] > 0]
    normalized = normalized[normalized["volume"] >= 0]
    normalized = normalized.drop_duplicates(subset="date", keep="last")
    normalized = normalized.sort_values("date").reset_index(drop=True)

    return [_row_to_bar(row) for row in normalized.to_dict(orient="records")]


def closes(bars: Sequence[Bar]) -> list[float]:
    """Closing prices in bar order."""
    return [bar.close for bar in bars]


def _row_to_bar(row: Mapping[str, Any]) -> Bar:
    return Bar(
        date=row["date"],
        open=float(row["open"]),
        high=float(row["high"]),
        low=float(row["low"]),
        close=float(row["close"]),
        volume=int(row["volume"]),
        vwap=_optional_float(row.get("vwap")),
        transactions=_optional_int(row.get("transactions")),
    )


def _optional_float(value: object) -> float | None:
    if value is None or pd.isna(value):
        return None
    return float(value)  # type: ignore[arg-type]


def _optional_int(value: object) -> int | None:
    if value is None or pd.isna(value):
        return None
    return int(value)  # type: ignore[call-overload]

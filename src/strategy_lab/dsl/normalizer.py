"""Validate loosely-typed strategy input before any numeric work runs.

Strategy definitions arrive hand-edited or from an LLM, so every shape
problem is mapped onto the DSL error taxonomy here rather than surfacing
later as a KeyError or a NaN inside the engine.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping

from pydantic import ValidationError as PydanticValidationError

from strategy_lab.dsl.errors import InvalidParameter, UnsupportedRuleKind, ValidationError
from strategy_lab.dsl.schemas import (
    DEFAULT_STRATEGY_NAME,
    RULE_MODELS,
    MovingAverageCrossRule,
    OscillatorThresholdRule,
    Strategy,
    TrendSignalCrossRule,
)

_POLARITY_KEYS = ("enter", "exit")


def normalize_strategy(candidate: object) -> Strategy:
    """Return a validated Strategy with per-kind defaults filled in."""
    if isinstance(candidate, Strategy):
        return candidate
    if not isinstance(candidate, Mapping):
        raise ValidationError("strategy_must_be_object")

    raw_name = candidate.get("name")
    name = raw_name.strip() if isinstance(raw_name, str) and raw_name.strip() else DEFAULT_STRATEGY_NAME

    raw_rules = candidate.get("rules")
    if raw_rules is None:
        raise ValidationError("strategy_has_no_rules")
    if not isinstance(raw_rules, (list, tuple)):
        raise ValidationError("strategy_rules_must_be_list")
    if not raw_rules:
        raise ValidationError("strategy_has_no_rules")

    rules = [_normalize_rule(raw) for raw in raw_rules]

    combine = candidate.get("combine")
    if combine is None:
        combine = "any"
    elif isinstance(combine, str):
        combine = combine.strip().lower()
    if combine not in ("any", "all"):
        raise InvalidParameter("strategy", "combine", f"expected 'any' or 'all', got {combine!r}")

    return Strategy(name=name, rules=tuple(rules), combine=combine)


def parse_strategy_text(text: str) -> Strategy:
    """Extract the first JSON object from plain or fenced text and normalize it."""
    return normalize_strategy(_extract_json_obj(text))


def strategy_as_dict(strategy: Strategy) -> dict[str, Any]:
    """Canonical DSL echo with every default spelled out."""
    rules: list[dict[str, Any]] = []
    for rule in strategy.rules:
        params = rule.model_dump(exclude={"type"})
        rules.append({"type": rule.type, "params": params})
    return {"name": strategy.name, "combine": strategy.combine, "rules": rules}


def _normalize_rule(
    raw: object,
) -> MovingAverageCrossRule | OscillatorThresholdRule | TrendSignalCrossRule:
    if not isinstance(raw, Mapping):
        raise ValidationError("rule_must_be_object")

    kind = raw.get("type")
    model = RULE_MODELS.get(kind) if isinstance(kind, str) else None
    if model is None:
        raise UnsupportedRuleKind(kind)

    raw_params = raw.get("params")
    if raw_params is None:
        raw_params = {}
    if not isinstance(raw_params, Mapping):
        raise InvalidParameter(kind, "params", "must be an object")

    params = {key: value for key, value in raw_params.items() if value is not None}
    # LLM output tends to put enter/exit beside params instead of inside them
    for key in _POLARITY_KEYS:
        if key not in params and raw.get(key) is not None:
            params[key] = raw[key]
    params = {key: _coerce_numeric_text(value) for key, value in params.items()}

    try:
        return model.model_validate({**params, "type": kind})
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        loc = [str(part) for part in first.get("loc", ()) if part != "type"]
        field = loc[0] if loc else "params"
        raise InvalidParameter(kind, field, str(first.get("msg", "invalid"))) from exc


def _coerce_numeric_text(value: Any) -> Any:
    """Turn numeric-looking strings ("14", " 30.5 ", "10.0") into numbers."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    try:
        number = float(text)
    except ValueError:
        return value
    if number.is_integer() and re.fullmatch(r"[+-]?\d+(\.0*)?", text):
        return int(number)
    return number


def _extract_json_obj(text: str) -> dict[str, Any]:
    """Extract the first JSON object from plain text or fenced content."""
    stripped = text.strip()
    candidates: list[str] = []
    if stripped.startswith("{") and stripped.endswith("}"):
        candidates.append(stripped)
    fenced_match = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", stripped, re.DOTALL)
    if fenced_match:
        candidates.append(fenced_match.group(1))
    brace_match = re.search(r"\{.*\}", stripped, re.DOTALL)
    if brace_match:
        candidates.append(brace_match.group(0))

    if not candidates:
        raise ValidationError("strategy_text_not_json")

    try:
        decoded = json.loads(candidates[0])
    except json.JSONDecodeError as exc:
        raise ValidationError(f"strategy_text_invalid_json: {exc.msg}") from exc
    if not isinstance(decoded, dict):
        raise ValidationError("strategy_json_not_object")
    return decoded

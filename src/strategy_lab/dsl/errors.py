"""Errors raised while normalizing a strategy definition."""

from __future__ import annotations


class DSLError(Exception):
    """Base strategy DSL error."""


class ValidationError(DSLError):
    """Raised when the strategy shape is unusable (not an object, no rules)."""


class UnsupportedRuleKind(ValidationError):
    """Raised when a rule carries a type tag outside the supported set."""

    def __init__(self, kind: object) -> None:
        self.kind = kind
        super().__init__(f"unsupported_rule_kind: {kind!r}")


class InvalidParameter(ValidationError):
    """Raised when a rule parameter cannot be coerced or is out of range."""

    def __init__(self, kind: str, field: str, reason: str) -> None:
        self.kind = kind
        self.field = field
        self.reason = reason
        super().__init__(f"invalid_parameter: {kind}.{field}: {reason}")

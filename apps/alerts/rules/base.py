"""
Base classes for alert rule evaluators.

Each rule type has one evaluator that:
- parses the rule's raw JSON parameters into a typed dataclass
- checks the condition against telemetry
- builds the fingerprint that identifies the firing condition instance
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from apps.alerts.config import EvaluatorConfig

if TYPE_CHECKING:
    from apps.alerts.models import AlertRule

ALL_SCOPE = "all"


class InvalidRuleParams(ValueError):
    """Raised when a rule's parameters cannot be interpreted."""


@dataclass
class RuleResult:
    """
    Outcome of checking one rule.

    Attributes:
        triggered: Whether the condition currently holds.
        context: Values observed while checking (recorded on incidents/events).
        fingerprint: Dedup key for the firing condition; empty when not triggered.
    """

    triggered: bool
    context: dict[str, Any] = field(default_factory=dict)
    fingerprint: str = ""

    @classmethod
    def not_triggered(cls) -> "RuleResult":
        return cls(triggered=False)


def scope_key(value: str | None) -> str:
    """Fingerprint segment for an optional scope id."""
    return value or ALL_SCOPE


def positive_int(raw: dict[str, Any], key: str, default: int) -> int:
    """Read a positive integer parameter, falling back to `default` when unset.

    Unset means missing, None, 0 or "" (matching how rules are stored by the
    management UI); numeric strings are read like the numbers they spell, so
    "0" is unset too. Booleans and anything else that is not a positive
    integer are invalid.
    """
    value = raw.get(key)
    if isinstance(value, bool):
        raise InvalidRuleParams(f"{key} must be an integer, got {value!r}")
    if isinstance(value, str):
        value = value.strip()
        if value == "":
            return default
        if not value.isdigit():
            raise InvalidRuleParams(f"{key} must be an integer, got {value!r}")
        value = int(value)
    if value is None or value == 0:
        return default
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value < 1:
        raise InvalidRuleParams(f"{key} must be a positive integer, got {value!r}")
    return value


ParamsT = TypeVar("ParamsT")


class BaseRuleEvaluator(ABC, Generic[ParamsT]):
    """
    Abstract base for rule-type evaluators.

    Subclasses define `rule_type` and implement `parse_params()` and `check()`.
    """

    rule_type: str = "base"

    def __init__(self, config: EvaluatorConfig | None = None):
        self.config = config or EvaluatorConfig()

    @abstractmethod
    def parse_params(self, raw: Any) -> ParamsT:
        """Convert stored JSON parameters into the typed parameter object."""

    @abstractmethod
    def check(self, rule: AlertRule, params: ParamsT, now: datetime) -> RuleResult:
        """Check the condition for `rule` as of `now`."""

    def evaluate(self, rule: AlertRule, now: datetime) -> RuleResult:
        params = self.parse_params(rule.params if rule.params is not None else {})
        return self.check(rule, params, now)

    @staticmethod
    def _require_mapping(raw: Any) -> dict[str, Any]:
        if not isinstance(raw, dict):
            raise InvalidRuleParams(f"Rule parameters must be an object, got {type(raw).__name__}")
        return raw

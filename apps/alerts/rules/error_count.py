"""Error count rule: too many error logs within a time window."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from apps.alerts.rules.base import BaseRuleEvaluator, RuleResult, positive_int, scope_key
from apps.telemetry.models import LogEntry, LogLevel


@dataclass(frozen=True)
class ErrorCountParams:
    window_minutes: int
    threshold: int


class ErrorCountEvaluator(BaseRuleEvaluator[ErrorCountParams]):
    """Fires when the number of error logs in scope reaches the threshold."""

    rule_type = "error_count"

    def parse_params(self, raw: Any) -> ErrorCountParams:
        raw = self._require_mapping(raw)
        return ErrorCountParams(
            window_minutes=positive_int(raw, "windowMinutes", self.config.default_window_minutes),
            threshold=positive_int(raw, "threshold", self.config.default_threshold),
        )

    def check(self, rule, params: ErrorCountParams, now: datetime) -> RuleResult:
        since = now - timedelta(minutes=params.window_minutes)
        count = (
            LogEntry.objects.in_scope(rule.org_id, rule.service_id, rule.environment_id)
            .filter(level=LogLevel.ERROR, ts__gte=since)
            .count()
        )

        if count < params.threshold:
            return RuleResult.not_triggered()

        return RuleResult(
            triggered=True,
            context={
                "count": count,
                "threshold": params.threshold,
                "windowMinutes": params.window_minutes,
            },
            fingerprint=self.fingerprint(rule, params),
        )

    def fingerprint(self, rule, params: ErrorCountParams) -> str:
        return ":".join(
            [
                self.rule_type,
                scope_key(rule.service_id),
                scope_key(rule.environment_id),
                str(params.window_minutes),
                str(params.threshold),
            ]
        )

"""Deployment failure rule: the latest deployment in scope did not succeed."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from apps.alerts.rules.base import BaseRuleEvaluator, RuleResult, scope_key
from apps.telemetry.models import Deployment


@dataclass(frozen=True)
class DeploymentFailureParams:
    """This rule type takes no parameters."""


class DeploymentFailureEvaluator(BaseRuleEvaluator[DeploymentFailureParams]):
    """
    Fires when the most recent deployment in scope failed, timed out or was
    cancelled. Each failed deployment gets its own fingerprint, so a new
    failure opens a new incident while a repeat sighting of the same one
    does not.
    """

    rule_type = "deployment_failure"

    def parse_params(self, raw: Any) -> DeploymentFailureParams:
        self._require_mapping(raw)
        return DeploymentFailureParams()

    def check(self, rule, params: DeploymentFailureParams, now: datetime) -> RuleResult:
        latest = (
            Deployment.objects.in_scope(rule.org_id, rule.service_id, rule.environment_id)
            .order_by("-created_at", "-id")
            .first()
        )

        if latest is None or not latest.is_failed:
            return RuleResult.not_triggered()

        return RuleResult(
            triggered=True,
            context={"deploymentId": latest.pk, "status": latest.status},
            fingerprint=":".join(
                [
                    self.rule_type,
                    scope_key(rule.service_id),
                    scope_key(rule.environment_id),
                    str(latest.pk),
                ]
            ),
        )

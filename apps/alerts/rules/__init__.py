"""
Alert rule evaluators, keyed by rule type.
"""

from apps.alerts.config import EvaluatorConfig
from apps.alerts.rules.base import BaseRuleEvaluator, InvalidRuleParams, RuleResult
from apps.alerts.rules.deployment_failure import (
    DeploymentFailureEvaluator,
    DeploymentFailureParams,
)
from apps.alerts.rules.error_count import ErrorCountEvaluator, ErrorCountParams

__all__ = [
    "BaseRuleEvaluator",
    "DeploymentFailureEvaluator",
    "DeploymentFailureParams",
    "ErrorCountEvaluator",
    "ErrorCountParams",
    "InvalidRuleParams",
    "RULE_EVALUATOR_REGISTRY",
    "RuleResult",
    "get_rule_evaluator",
]

RULE_EVALUATOR_REGISTRY: dict[str, type[BaseRuleEvaluator]] = {
    "error_count": ErrorCountEvaluator,
    "deployment_failure": DeploymentFailureEvaluator,
}


def get_rule_evaluator(rule_type: str, config: EvaluatorConfig | None = None) -> BaseRuleEvaluator:
    """
    Get an evaluator instance for a rule type.

    Raises:
        InvalidRuleParams: If the rule type is unknown.
    """
    evaluator_class = RULE_EVALUATOR_REGISTRY.get(rule_type)
    if evaluator_class is None:
        raise InvalidRuleParams(
            f"Unknown rule type: {rule_type}. Available: {list(RULE_EVALUATOR_REGISTRY.keys())}"
        )
    return evaluator_class(config)

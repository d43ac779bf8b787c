"""Evaluator configuration passed explicitly into each run."""

from dataclasses import dataclass

from django.conf import settings


@dataclass(frozen=True)
class EvaluatorConfig:
    """
    Settings for one rule evaluation run.

    Attributes:
        base_url: Public base URL used to build incident links.
        default_window_minutes: error_count window when a rule leaves it unset.
        default_threshold: error_count threshold when a rule leaves it unset.
    """

    base_url: str = "http://localhost:8000"
    default_window_minutes: int = 5
    default_threshold: int = 10

    @classmethod
    def from_settings(cls) -> "EvaluatorConfig":
        return cls(
            base_url=getattr(settings, "APP_BASE_URL", cls.base_url),
            default_window_minutes=getattr(settings, "ALERTS_DEFAULT_WINDOW_MINUTES", 5),
            default_threshold=getattr(settings, "ALERTS_DEFAULT_THRESHOLD", 10),
        )

    def incident_link(self, incident_id: int) -> str:
        return f"{self.base_url.rstrip('/')}/incidents/{incident_id}"

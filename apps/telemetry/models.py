"""
Telemetry models: log entries and deployments.

Every row is scoped to an organization and optionally to a service and an
environment. Scope identifiers are opaque strings owned by the tenancy layer.
"""

from django.db import models
from django.utils import timezone


class LogLevel(models.TextChoices):
    """Severity level of a log entry."""

    DEBUG = "debug", "Debug"
    INFO = "info", "Info"
    WARN = "warn", "Warn"
    ERROR = "error", "Error"


class DeploymentStatus(models.TextChoices):
    """Outcome of a deployment as reported by the CI provider."""

    QUEUED = "queued", "Queued"
    IN_PROGRESS = "in_progress", "In progress"
    SUCCESS = "success", "Success"
    FAILURE = "failure", "Failure"
    TIMED_OUT = "timed_out", "Timed out"
    CANCELLED = "cancelled", "Cancelled"

    @classmethod
    def failed(cls) -> list[str]:
        """Statuses that count as a failed deployment."""
        return [cls.FAILURE, cls.TIMED_OUT, cls.CANCELLED]


class ScopedQuerySet(models.QuerySet):
    def in_scope(self, org_id: str, service_id: str | None = None, environment_id: str | None = None):
        """Filter to an org, narrowing by service/environment when given.

        A None service or environment means "all".
        """
        qs = self.filter(org_id=org_id)
        if service_id:
            qs = qs.filter(service_id=service_id)
        if environment_id:
            qs = qs.filter(environment_id=environment_id)
        return qs


class LogEntry(models.Model):
    """A single application log line."""

    org_id = models.CharField(max_length=64, db_index=True)
    service_id = models.CharField(max_length=64, null=True, blank=True)
    environment_id = models.CharField(max_length=64, null=True, blank=True)

    level = models.CharField(
        max_length=10,
        choices=LogLevel.choices,
        default=LogLevel.INFO,
    )
    message = models.TextField()
    metadata = models.JSONField(default=dict, blank=True)
    ts = models.DateTimeField(
        default=timezone.now,
        help_text="When the log line was emitted.",
    )

    objects = ScopedQuerySet.as_manager()

    class Meta:
        ordering = ["-ts"]
        verbose_name_plural = "Log entries"
        indexes = [
            models.Index(fields=["org_id", "level", "ts"], name="telemetry_l_org_id_8a2d41_idx"),
            models.Index(
                fields=["org_id", "service_id", "environment_id", "ts"],
                name="telemetry_l_org_id_e07b93_idx",
            ),
        ]

    def __str__(self):
        return f"[{self.level}] {self.message[:60]}"


class Deployment(models.Model):
    """A deployment record produced by the CI webhook integration."""

    org_id = models.CharField(max_length=64, db_index=True)
    service_id = models.CharField(max_length=64, null=True, blank=True)
    environment_id = models.CharField(max_length=64, null=True, blank=True)

    status = models.CharField(
        max_length=20,
        choices=DeploymentStatus.choices,
        default=DeploymentStatus.QUEUED,
        db_index=True,
    )
    commit_sha = models.CharField(max_length=64, blank=True, default="")
    ref = models.CharField(max_length=255, blank=True, default="")
    url = models.URLField(max_length=500, blank=True, default="")
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    objects = ScopedQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["org_id", "service_id", "environment_id", "created_at"],
                name="telemetry_d_org_id_5c1f0e_idx",
            ),
        ]

    def __str__(self):
        sha = self.commit_sha[:7] if self.commit_sha else "-"
        return f"Deployment {sha} [{self.status}]"

    @property
    def is_failed(self) -> bool:
        return self.status in DeploymentStatus.failed()

"""
Alert rule, firing state and incident models.
"""

from django.conf import settings
from django.db import models, transaction
from django.db.models import Q
from django.utils import timezone


def default_cooldown_seconds() -> int:
    return getattr(settings, "ALERTS_DEFAULT_COOLDOWN_SECONDS", 300)


class AlertSeverity(models.TextChoices):
    """Severity levels for rules and incidents."""

    CRITICAL = "critical", "Critical"
    HIGH = "high", "High"
    MEDIUM = "med", "Medium"
    LOW = "low", "Low"


class RuleType(models.TextChoices):
    """Supported alert rule types."""

    ERROR_COUNT = "error_count", "Error count"
    DEPLOYMENT_FAILURE = "deployment_failure", "Deployment failure"


class IncidentStatus(models.TextChoices):
    """Status of an incident."""

    OPEN = "open", "Open"
    INVESTIGATING = "investigating", "Investigating"
    RESOLVED = "resolved", "Resolved"

    @classmethod
    def active(cls) -> list[str]:
        """Statuses that count as an ongoing incident for deduplication."""
        return [cls.OPEN, cls.INVESTIGATING]


class IncidentSource(models.TextChoices):
    MANUAL = "manual", "Manual"
    ALERT = "alert", "Alert"


class IncidentEventType(models.TextChoices):
    CREATED = "created", "Created"
    TRIGGER = "trigger", "Trigger"
    STATUS_CHANGE = "status_change", "Status change"
    NOTE = "note", "Note"


class AlertRule(models.Model):
    """
    A condition to watch for one organization.

    Service and environment are optional filters; null means "all".
    Rules are managed elsewhere and only read by the evaluator.
    """

    org_id = models.CharField(max_length=64, db_index=True)
    service_id = models.CharField(max_length=64, null=True, blank=True)
    environment_id = models.CharField(max_length=64, null=True, blank=True)

    name = models.CharField(max_length=255)
    rule_type = models.CharField(
        max_length=50,
        choices=RuleType.choices,
        help_text="Which evaluator checks this rule.",
    )
    params = models.JSONField(
        default=dict,
        blank=True,
        help_text='Type-specific parameters, e.g. {"threshold": 10, "windowMinutes": 5}.',
    )
    severity = models.CharField(
        max_length=20,
        choices=AlertSeverity.choices,
        default=AlertSeverity.HIGH,
    )
    enabled = models.BooleanField(default=True, db_index=True)
    cooldown_seconds = models.PositiveIntegerField(
        default=default_cooldown_seconds,
        help_text="Minimum seconds between incidents for the same fingerprint.",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["org_id", "name"]
        indexes = [
            models.Index(fields=["enabled", "org_id"], name="alerts_aler_enabled_4b7e1d_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.rule_type})"


class AlertFiring(models.Model):
    """
    Firing state per (rule, fingerprint).

    `fired_at` moves forward every cycle the condition holds. `last_notified_at`
    only moves when a new incident is opened for the fingerprint, and drives
    the cooldown check.
    """

    rule = models.ForeignKey(
        AlertRule,
        on_delete=models.CASCADE,
        related_name="firings",
    )
    fingerprint = models.CharField(max_length=255)
    fired_at = models.DateTimeField()
    last_notified_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-fired_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["rule", "fingerprint"],
                name="uniq_alert_firing_rule_fingerprint",
            ),
        ]

    def __str__(self):
        return f"{self.rule.name}: {self.fingerprint}"


class IncidentQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status__in=IncidentStatus.active())

    def for_fingerprint(self, org_id: str, rule, fingerprint: str):
        return self.filter(org_id=org_id, rule=rule, fingerprint=fingerprint)


class Incident(models.Model):
    """
    A trackable operational event.

    At most one incident per (org, rule, fingerprint) may be open or
    investigating at a time; the database enforces this.
    """

    org_id = models.CharField(max_length=64, db_index=True)
    service_id = models.CharField(max_length=64, null=True, blank=True)
    environment_id = models.CharField(max_length=64, null=True, blank=True)

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    severity = models.CharField(
        max_length=20,
        choices=AlertSeverity.choices,
        default=AlertSeverity.HIGH,
        db_index=True,
    )
    status = models.CharField(
        max_length=20,
        choices=IncidentStatus.choices,
        default=IncidentStatus.OPEN,
        db_index=True,
    )
    source = models.CharField(
        max_length=20,
        choices=IncidentSource.choices,
        default=IncidentSource.MANUAL,
    )

    # Set when source == alert
    rule = models.ForeignKey(
        AlertRule,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="incidents",
    )
    fingerprint = models.CharField(max_length=255, blank=True, default="", db_index=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    objects = IncidentQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["org_id", "status"], name="alerts_inci_org_id_7d0c55_idx"),
            models.Index(fields=["created_at"], name="alerts_inci_created_2e91aa_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["org_id", "rule", "fingerprint"],
                condition=Q(status__in=["open", "investigating"]),
                name="uniq_active_incident_per_fingerprint",
            ),
        ]

    def __str__(self):
        return f"[{self.status}] {self.title}"

    @property
    def is_active(self) -> bool:
        return self.status in IncidentStatus.active()

    @property
    def is_resolved(self) -> bool:
        return self.status == IncidentStatus.RESOLVED

    def add_event(
        self,
        event_type: str,
        message: str,
        actor: str = "",
        metadata: dict | None = None,
        created_at=None,
    ) -> "IncidentEvent":
        return IncidentEvent.objects.create(
            incident=self,
            event_type=event_type,
            message=message,
            actor=actor,
            metadata=metadata or {},
            created_at=created_at or timezone.now(),
        )

    def transition_to(self, new_status: str, actor: str = "", now=None) -> "IncidentEvent | None":
        """
        Move the incident to `new_status` and append a status_change event.

        Entering resolved stamps resolved_at; leaving it clears resolved_at.
        Returns None when the status is unchanged.
        """
        if new_status not in IncidentStatus.values:
            raise ValueError(f"Invalid incident status: {new_status}")

        old_status = self.status
        if new_status == old_status:
            return None

        now = now or timezone.now()
        with transaction.atomic():
            self.status = new_status
            if new_status == IncidentStatus.RESOLVED:
                self.resolved_at = now
            else:
                self.resolved_at = None
            self.save(update_fields=["status", "resolved_at", "updated_at"])

            return self.add_event(
                IncidentEventType.STATUS_CHANGE,
                f"Status changed from {old_status} to {new_status}",
                actor=actor,
                metadata={"old_status": old_status, "new_status": new_status},
                created_at=now,
            )

    def investigate(self, actor: str = "", now=None):
        return self.transition_to(IncidentStatus.INVESTIGATING, actor=actor, now=now)

    def resolve(self, actor: str = "", now=None):
        return self.transition_to(IncidentStatus.RESOLVED, actor=actor, now=now)

    def reopen(self, actor: str = "", now=None):
        return self.transition_to(IncidentStatus.OPEN, actor=actor, now=now)


class IncidentEvent(models.Model):
    """
    Timeline entry for an incident. Append-only.
    """

    incident = models.ForeignKey(
        Incident,
        on_delete=models.CASCADE,
        related_name="events",
    )
    event_type = models.CharField(
        max_length=30,
        choices=IncidentEventType.choices,
    )
    message = models.TextField(blank=True, default="")
    actor = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Who caused the event (empty for the evaluator).",
    )
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.incident_id}: {self.event_type}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Incident events are append-only and cannot be modified.")
        super().save(*args, **kwargs)

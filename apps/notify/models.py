"""
Notification models: org-scoped channel configuration and the outbound job queue.

Channels are managed by operators and read by the dispatcher. Jobs are
written by the dispatcher and mutated only by the delivery worker.
"""

from datetime import timedelta

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class ChannelDriver(models.TextChoices):
    """Outbound channel types."""

    DISCORD = "discord", "Discord"
    SLACK = "slack", "Slack"


class NotificationChannel(models.Model):
    """
    Configuration for an outbound webhook target of one organization.

    `config` holds the driver configuration; both drivers need a `webhook_url`.
    """

    org_id = models.CharField(max_length=64, db_index=True)
    name = models.CharField(
        max_length=100,
        help_text="Name for this channel (e.g., 'ops-slack', 'oncall-discord').",
    )
    driver = models.CharField(
        max_length=50,
        choices=ChannelDriver.choices,
        db_index=True,
        help_text="Driver type (discord or slack).",
    )
    config = models.JSONField(
        default=dict,
        blank=True,
        help_text='Driver configuration, e.g. {"webhook_url": "https://..."}.',
    )
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether this channel receives notifications.",
    )
    description = models.TextField(
        blank=True,
        default="",
        help_text="Description of this channel's purpose.",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["org_id", "name"]
        constraints = [
            models.UniqueConstraint(fields=["org_id", "name"], name="uniq_notify_channel_org_name"),
        ]

    def __str__(self):
        status = "active" if self.is_active else "inactive"
        return f"{self.name} ({self.driver}) [{status}]"

    @property
    def webhook_url(self) -> str:
        return (self.config or {}).get("webhook_url", "")

    def clean(self):
        from apps.notify.drivers import get_driver

        if not get_driver(self.driver).validate_config(self.config or {}):
            raise ValidationError({"config": "A valid http(s) webhook_url is required."})


class JobStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    SENT = "sent", "Sent"
    FAILED = "failed", "Failed"


class NotificationJobQuerySet(models.QuerySet):
    def due(self, now, max_attempts: int):
        """Jobs eligible for a delivery attempt, oldest due first."""
        return self.filter(
            status__in=[JobStatus.PENDING, JobStatus.FAILED],
            next_attempt_at__lte=now,
            attempts__lt=max_attempts,
        ).order_by("next_attempt_at", "id")

    def recent(self, org_id: str, limit: int = 25):
        return self.filter(org_id=org_id).order_by("-created_at", "-id")[:limit]


class NotificationJob(models.Model):
    """
    A queued outbound delivery.

    The payload carries everything the worker needs (webhook URL plus the
    rendered event fields), so delivery never reads the channel again.
    """

    org_id = models.CharField(max_length=64, db_index=True)
    channel = models.ForeignKey(
        NotificationChannel,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="jobs",
    )
    driver = models.CharField(
        max_length=50,
        help_text="Channel type at enqueue time; selects the message shape.",
    )
    payload = models.JSONField(default=dict, blank=True)
    status = models.CharField(
        max_length=20,
        choices=JobStatus.choices,
        default=JobStatus.PENDING,
        db_index=True,
    )
    attempts = models.PositiveIntegerField(default=0)
    next_attempt_at = models.DateTimeField(default=timezone.now)
    last_error = models.TextField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    objects = NotificationJobQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "next_attempt_at"], name="notify_noti_status_9c3e7b_idx"),
            models.Index(fields=["org_id", "created_at"], name="notify_noti_org_id_41f8d2_idx"),
        ]

    def __str__(self):
        return f"Job {self.pk} ({self.driver}) [{self.status}]"

    def mark_sent(self):
        self.status = JobStatus.SENT
        self.last_error = None
        self.save(update_fields=["status", "last_error", "updated_at"])

    def record_failure(self, error: str, now, max_attempts: int, backoff_minutes: int):
        """
        Count a failed attempt.

        Exhausted jobs become terminal `failed`; others go back to `pending`
        and become due again after the backoff delay.
        """
        self.attempts += 1
        self.status = JobStatus.FAILED if self.attempts >= max_attempts else JobStatus.PENDING
        self.next_attempt_at = now + timedelta(minutes=backoff_minutes)
        self.last_error = error
        self.save(update_fields=["status", "attempts", "next_attempt_at", "last_error", "updated_at"])

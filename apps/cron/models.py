"""
Run records for scheduled jobs.

A CronRun is written once per job invocation for observability. It is a side
effect of the run, never an input to it.
"""

import logging
from datetime import datetime
from typing import Any

from django.db import DatabaseError, models
from django.utils import timezone

logger = logging.getLogger(__name__)


class CronRunStatus(models.TextChoices):
    SUCCESS = "success", "Success"
    FAILED = "failed", "Failed"


class CronRun(models.Model):
    """Summary of a single job invocation."""

    name = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Job name (e.g., 'rules.evaluate', 'notifications.process').",
    )
    status = models.CharField(
        max_length=20,
        choices=CronRunStatus.choices,
        default=CronRunStatus.SUCCESS,
        db_index=True,
    )
    started_at = models.DateTimeField()
    finished_at = models.DateTimeField(null=True, blank=True)
    meta = models.JSONField(
        default=dict,
        blank=True,
        help_text="Job-specific summary (counts, per-item outcomes, error).",
    )

    class Meta:
        ordering = ["-started_at"]
        indexes = [
            models.Index(fields=["name", "started_at"], name="cron_cronru_name_3f9c2a_idx"),
        ]

    def __str__(self):
        return f"{self.name} [{self.status}] {self.started_at:%Y-%m-%d %H:%M:%S}"

    @property
    def duration(self):
        if self.finished_at is None:
            return None
        return self.finished_at - self.started_at

    @classmethod
    def record(
        cls,
        name: str,
        started_at: datetime,
        meta: dict[str, Any] | None = None,
        status: str = CronRunStatus.SUCCESS,
    ) -> "CronRun":
        """Persist a finished run."""
        return cls.objects.create(
            name=name,
            status=status,
            started_at=started_at,
            finished_at=timezone.now(),
            meta=meta or {},
        )

    @classmethod
    def record_failure(cls, name: str, started_at: datetime, error: BaseException) -> "CronRun | None":
        """Best-effort `failed` record for a run that raised; never raises itself."""
        try:
            return cls.record(name, started_at=started_at, meta={"error": str(error)}, status=CronRunStatus.FAILED)
        except DatabaseError:
            logger.exception(f"Could not record failed run for {name}")
            return None

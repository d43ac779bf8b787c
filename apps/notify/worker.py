"""
Notification delivery worker.

Each run drains one bounded batch of due jobs: builds the channel-specific
message body, POSTs it, and records success or schedules a retry with
backoff. Jobs are handled one at a time and each outcome is saved on its own,
so one failing webhook never blocks or rolls back the rest of the batch.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from django.conf import settings
from django.utils import timezone

from apps.cron.models import CronRun
from apps.notify.drivers import NotificationMessage, get_driver
from apps.notify.models import JobStatus, NotificationJob

logger = logging.getLogger(__name__)

JOB_NAME = "notifications.process"

DEFAULT_BACKOFF_MINUTES = (1, 2, 5, 10, 30)


@dataclass(frozen=True)
class WorkerConfig:
    """
    Settings for one worker run.

    Attributes:
        batch_size: Maximum jobs picked up per run.
        max_attempts: Attempts after which a job becomes terminal `failed`.
        backoff_minutes: Retry delay table, indexed by attempts - 1.
        timeout: Seconds before an outbound webhook call is abandoned.
    """

    batch_size: int = 10
    max_attempts: int = 5
    backoff_minutes: tuple[int, ...] = DEFAULT_BACKOFF_MINUTES
    timeout: float = 5.0

    def __post_init__(self):
        if not self.backoff_minutes:
            raise ValueError("backoff_minutes must contain at least one entry")
        if self.batch_size < 1 or self.max_attempts < 1:
            raise ValueError("batch_size and max_attempts must be positive")

    @classmethod
    def from_settings(cls) -> "WorkerConfig":
        return cls(
            batch_size=getattr(settings, "NOTIFY_BATCH_SIZE", 10),
            max_attempts=getattr(settings, "NOTIFY_MAX_ATTEMPTS", 5),
            backoff_minutes=tuple(getattr(settings, "NOTIFY_BACKOFF_MINUTES", DEFAULT_BACKOFF_MINUTES)),
            timeout=float(getattr(settings, "NOTIFY_WEBHOOK_TIMEOUT", 5.0)),
        )


def backoff_delay(attempts: int, schedule=DEFAULT_BACKOFF_MINUTES) -> int:
    """Minutes to wait after the `attempts`-th failure (clamped to the last entry)."""
    index = min(max(attempts, 1) - 1, len(schedule) - 1)
    return schedule[index]


@dataclass
class JobOutcome:
    id: int
    status: str
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "status": self.status}
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class ProcessResult:
    """Report of one worker run."""

    results: list[JobOutcome] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "results": [outcome.to_dict() for outcome in self.results],
        }


class NotificationWorker:
    """
    Delivers due notification jobs.

    Usage:
        result = NotificationWorker(WorkerConfig.from_settings()).run()
    """

    def __init__(self, config: WorkerConfig | None = None):
        self.config = config or WorkerConfig.from_settings()

    def run(self, now: datetime | None = None) -> ProcessResult:
        started_at = timezone.now()
        now = now or started_at
        result = ProcessResult()

        jobs = list(NotificationJob.objects.due(now, self.config.max_attempts)[: self.config.batch_size])
        if not jobs:
            logger.debug("No notification jobs due")
            return result

        logger.info(f"Processing {len(jobs)} notification job(s)")
        for job in jobs:
            result.results.append(self.process_job(job, now))

        CronRun.record(JOB_NAME, started_at=started_at, meta=result.to_dict())

        sent = sum(1 for outcome in result.results if outcome.status == JobStatus.SENT)
        logger.info(f"Notification run finished: {sent}/{result.processed} sent")
        return result

    def process_job(self, job: NotificationJob, now: datetime) -> JobOutcome:
        """Attempt one delivery and persist its outcome."""
        try:
            message = NotificationMessage.from_payload(job.payload)
            delivery = get_driver(job.driver).send(message, timeout=self.config.timeout)
            error = None if delivery.get("success") else delivery.get("error") or "Unknown error"
        except Exception as e:
            logger.exception(f"Unexpected error delivering notification job {job.pk}")
            error = str(e) or e.__class__.__name__

        if error is None:
            job.mark_sent()
            return JobOutcome(id=job.pk, status=JobStatus.SENT)

        attempts = job.attempts + 1
        job.record_failure(
            error,
            now=now,
            max_attempts=self.config.max_attempts,
            backoff_minutes=backoff_delay(attempts, self.config.backoff_minutes),
        )
        logger.warning(
            f"Notification job {job.pk} failed (attempt {job.attempts}/{self.config.max_attempts}): {error}"
        )
        return JobOutcome(id=job.pk, status=job.status, error=error)

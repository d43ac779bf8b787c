"""Log retention: prune log entries older than the configured window."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from django.conf import settings
from django.utils import timezone

from apps.cron.models import CronRun
from apps.telemetry.models import LogEntry

logger = logging.getLogger(__name__)

JOB_NAME = "logs.cleanup"


@dataclass(frozen=True)
class CleanupConfig:
    """Settings for a cleanup run."""

    retention_days: int = 7

    @classmethod
    def from_settings(cls) -> "CleanupConfig":
        return cls(retention_days=getattr(settings, "LOG_RETENTION_DAYS", 7))


@dataclass
class CleanupResult:
    deleted: int
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {"deleted": self.deleted, "timestamp": self.timestamp.isoformat()}


class LogRetentionService:
    """Deletes log entries past retention and records a run."""

    def __init__(self, config: CleanupConfig | None = None):
        self.config = config or CleanupConfig.from_settings()

    def run(self, now: datetime | None = None) -> CleanupResult:
        started_at = timezone.now()
        now = now or started_at
        cutoff = now - timedelta(days=self.config.retention_days)

        deleted, _ = LogEntry.objects.filter(ts__lt=cutoff).delete()

        CronRun.record(JOB_NAME, started_at=started_at, meta={"deleted": deleted})
        logger.info(f"Log cleanup removed {deleted} entries older than {cutoff.isoformat()}")

        return CleanupResult(deleted=deleted, timestamp=now)

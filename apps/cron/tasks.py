"""Celery tasks for the scheduled jobs.

Each task runs one bounded job invocation and returns its report as a dict.
A job that raises leaves a `failed` CronRun behind and the exception
propagates to Celery.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from celery import shared_task
from django.utils import timezone

from apps.cron.models import CronRun

logger = logging.getLogger(__name__)


def run_job(name: str, job: Callable[[], Any]) -> dict[str, Any]:
    """Run `job()` and return its report, recording a failed run if it raises."""
    started_at = timezone.now()
    try:
        return job().to_dict()
    except Exception as e:
        logger.exception(f"Task for {name} failed")
        CronRun.record_failure(name, started_at, e)
        raise


@shared_task(bind=True)
def evaluate_rules_task(self) -> dict[str, Any]:
    """Evaluate all enabled alert rules once."""
    from apps.alerts.services import JOB_NAME, RuleEvaluator

    return run_job(JOB_NAME, lambda: RuleEvaluator().run())


@shared_task(bind=True)
def process_notifications_task(self) -> dict[str, Any]:
    """Deliver one batch of due notification jobs."""
    from apps.notify.worker import JOB_NAME, NotificationWorker

    return run_job(JOB_NAME, lambda: NotificationWorker().run())


@shared_task(bind=True)
def cleanup_logs_task(self) -> dict[str, Any]:
    """Delete log entries past the retention window."""
    from apps.telemetry.services import JOB_NAME, LogRetentionService

    return run_job(JOB_NAME, lambda: LogRetentionService().run())

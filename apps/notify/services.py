"""Notification enqueue side.

`NotificationDispatcher.enqueue()` fans one incident event out to every active
channel of an organization as pending `NotificationJob` rows. There is no
dedup here: callers enqueue once per incident transition.
"""

import logging
from dataclasses import dataclass
from typing import Any

from django.utils import timezone

from apps.notify.models import JobStatus, NotificationChannel, NotificationJob

logger = logging.getLogger(__name__)


@dataclass
class NotificationEvent:
    """An incident event rendered for delivery."""

    event: str
    incident_id: int
    title: str
    status: str
    link: str
    severity: str = ""
    service: str | None = None
    environment: str | None = None
    context: dict[str, Any] | None = None

    def to_payload(self, webhook_url: str) -> dict[str, Any]:
        payload = {
            "webhook_url": webhook_url,
            "event": self.event,
            "incident_id": self.incident_id,
            "title": self.title,
            "status": self.status,
            "severity": self.severity,
            "service": self.service,
            "environment": self.environment,
            "link": self.link,
        }
        if self.context is not None:
            payload["context"] = self.context
        return payload


class NotificationDispatcher:
    """Creates one pending job per active channel of an organization."""

    @staticmethod
    def enqueue(org_id: str, event: NotificationEvent, now=None) -> list[NotificationJob]:
        now = now or timezone.now()
        channels = NotificationChannel.objects.filter(org_id=org_id, is_active=True).order_by("id")

        jobs = [
            NotificationJob(
                org_id=org_id,
                channel=channel,
                driver=channel.driver,
                payload=event.to_payload(channel.webhook_url),
                status=JobStatus.PENDING,
                attempts=0,
                next_attempt_at=now,
                created_at=now,
            )
            for channel in channels
        ]
        if not jobs:
            return []

        created = NotificationJob.objects.bulk_create(jobs)
        logger.info(
            f"Enqueued {len(created)} notification job(s) for {event.event} "
            f"on incident {event.incident_id} (org {org_id})"
        )
        return created

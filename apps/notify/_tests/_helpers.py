from datetime import timedelta

from django.utils import timezone

from apps.notify.models import JobStatus, NotificationChannel, NotificationJob

WEBHOOK = "https://hooks.example.test/T00/B00/secret"


def make_channel(org_id="acme", name="ops-slack", driver="slack", webhook_url=WEBHOOK, **kwargs):
    return NotificationChannel.objects.create(
        org_id=org_id,
        name=name,
        driver=driver,
        config={"webhook_url": webhook_url},
        **kwargs,
    )


def make_job(org_id="acme", driver="slack", webhook_url=WEBHOOK, due_in=0, now=None, **kwargs):
    now = now or timezone.now()
    payload = {
        "webhook_url": webhook_url,
        "event": "incident.created",
        "incident_id": 1,
        "title": "[HIGH] API errors",
        "status": "open",
        "severity": "high",
        "service": None,
        "environment": None,
        "link": "https://ops.example.com/incidents/1",
    }
    defaults = {
        "status": JobStatus.PENDING,
        "next_attempt_at": now + timedelta(minutes=due_in),
        "created_at": now,
    }
    defaults.update(kwargs)
    return NotificationJob.objects.create(org_id=org_id, driver=driver, payload=payload, **defaults)

from django.test import TestCase
from django.utils import timezone

from apps.notify._tests._helpers import make_channel
from apps.notify.models import JobStatus, NotificationJob
from apps.notify.services import NotificationDispatcher, NotificationEvent


def _event(**kwargs):
    defaults = {
        "event": "incident.created",
        "incident_id": 42,
        "title": "[CRITICAL] Deploy failed",
        "status": "open",
        "link": "https://ops.example.com/incidents/42",
        "severity": "critical",
        "service": "svc-api",
        "environment": "prod",
    }
    defaults.update(kwargs)
    return NotificationEvent(**defaults)


class NotificationEventTests(TestCase):
    def test_to_payload_keys(self):
        payload = _event().to_payload("https://hooks.example.test/x")
        self.assertEqual(
            set(payload),
            {
                "webhook_url",
                "event",
                "incident_id",
                "title",
                "status",
                "severity",
                "service",
                "environment",
                "link",
            },
        )
        self.assertEqual(payload["webhook_url"], "https://hooks.example.test/x")
        self.assertEqual(payload["incident_id"], 42)

    def test_context_included_only_when_set(self):
        context = {"count": 12, "threshold": 10, "windowMinutes": 5}

        payload = _event(event="incident.updated", context=context).to_payload("https://hooks.example.test/x")

        self.assertEqual(payload["context"], context)
        self.assertNotIn("context", _event().to_payload("https://hooks.example.test/x"))


class NotificationDispatcherTests(TestCase):
    def test_one_pending_job_per_active_channel(self):
        slack = make_channel(name="ops-slack", driver="slack", webhook_url="https://hooks.example.test/s")
        discord = make_channel(name="ops-discord", driver="discord", webhook_url="https://hooks.example.test/d")
        make_channel(name="muted", is_active=False)
        make_channel(org_id="globex", name="other")
        now = timezone.now()

        jobs = NotificationDispatcher.enqueue("acme", _event(), now=now)

        self.assertEqual(len(jobs), 2)
        self.assertEqual(NotificationJob.objects.count(), 2)
        by_channel = {job.channel_id: job for job in NotificationJob.objects.all()}
        self.assertEqual(by_channel[slack.pk].driver, "slack")
        self.assertEqual(by_channel[slack.pk].payload["webhook_url"], "https://hooks.example.test/s")
        self.assertEqual(by_channel[discord.pk].driver, "discord")
        self.assertEqual(by_channel[discord.pk].payload["webhook_url"], "https://hooks.example.test/d")
        for job in by_channel.values():
            self.assertEqual(job.status, JobStatus.PENDING)
            self.assertEqual(job.attempts, 0)
            self.assertEqual(job.next_attempt_at, now)
            self.assertEqual(job.org_id, "acme")
            self.assertEqual(job.payload["title"], "[CRITICAL] Deploy failed")

    def test_no_channels_enqueues_nothing(self):
        self.assertEqual(NotificationDispatcher.enqueue("acme", _event()), [])
        self.assertFalse(NotificationJob.objects.exists())

    def test_no_dedup_across_calls(self):
        make_channel()
        NotificationDispatcher.enqueue("acme", _event())
        NotificationDispatcher.enqueue("acme", _event(event="incident.updated"))
        self.assertEqual(NotificationJob.objects.count(), 2)

    def test_job_survives_channel_deletion(self):
        channel = make_channel()
        job = NotificationDispatcher.enqueue("acme", _event())[0]
        channel.delete()
        job.refresh_from_db()
        self.assertIsNone(job.channel_id)
        self.assertEqual(job.driver, "slack")

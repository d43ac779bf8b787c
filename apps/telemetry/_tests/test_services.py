import json
from datetime import timedelta
from io import StringIO

from django.core.management import CommandError, call_command
from django.test import TestCase, override_settings
from django.utils import timezone

from apps.cron.models import CronRun
from apps.telemetry.models import LogEntry
from apps.telemetry.services import CleanupConfig, LogRetentionService


class CleanupConfigTests(TestCase):
    @override_settings(LOG_RETENTION_DAYS=30)
    def test_from_settings(self):
        self.assertEqual(CleanupConfig.from_settings().retention_days, 30)


class LogRetentionServiceTests(TestCase):
    def setUp(self):
        self.now = timezone.now()
        LogEntry.objects.create(org_id="acme", message="old", ts=self.now - timedelta(days=8))
        LogEntry.objects.create(org_id="acme", message="older", ts=self.now - timedelta(days=30))
        LogEntry.objects.create(org_id="acme", message="recent", ts=self.now - timedelta(days=6))

    def test_deletes_entries_past_retention(self):
        result = LogRetentionService(CleanupConfig(retention_days=7)).run(now=self.now)

        self.assertEqual(result.deleted, 2)
        self.assertEqual(list(LogEntry.objects.values_list("message", flat=True)), ["recent"])

    def test_records_cron_run(self):
        LogRetentionService(CleanupConfig(retention_days=7)).run(now=self.now)

        run = CronRun.objects.get(name="logs.cleanup")
        self.assertEqual(run.status, "success")
        self.assertEqual(run.meta, {"deleted": 2})
        self.assertIsNotNone(run.finished_at)

    def test_nothing_to_delete(self):
        result = LogRetentionService(CleanupConfig(retention_days=60)).run(now=self.now)

        self.assertEqual(result.deleted, 0)
        self.assertEqual(LogEntry.objects.count(), 3)

    def test_result_dict(self):
        result = LogRetentionService(CleanupConfig(retention_days=7)).run(now=self.now)
        self.assertEqual(result.to_dict(), {"deleted": 2, "timestamp": self.now.isoformat()})


class CleanupLogsCommandTests(TestCase):
    def setUp(self):
        LogEntry.objects.create(org_id="acme", message="old", ts=timezone.now() - timedelta(days=10))

    def test_json_output(self):
        out = StringIO()
        call_command("cleanup_logs", "--days", "7", "--json", stdout=out)

        data = json.loads(out.getvalue())
        self.assertEqual(data["deleted"], 1)
        self.assertIn("timestamp", data)

    def test_text_output(self):
        out = StringIO()
        call_command("cleanup_logs", "--days", "7", stdout=out)
        self.assertIn("Deleted 1 log entries", out.getvalue())

    def test_invalid_days(self):
        with self.assertRaises(CommandError):
            call_command("cleanup_logs", "--days", "0")

from datetime import timedelta
from unittest.mock import MagicMock, patch

from django.test import Client, TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from apps.alerts.models import AlertRule, RuleType
from apps.cron import views
from apps.cron.models import CronRun, CronRunStatus
from apps.telemetry.models import LogEntry, LogLevel

AUTH = {"HTTP_AUTHORIZATION": "Bearer cron-s3cret"}


@override_settings(CRON_SECRET="cron-s3cret", INTERNAL_CRON_SECRET="internal-s3cret")
class CronViewTestCase(TestCase):
    def setUp(self):
        self.client = Client()
        self.evaluate_url = reverse("cron:evaluate")
        self.notifications_url = reverse("cron:notifications")
        self.cleanup_url = reverse("cron:cleanup")


class AuthorizationTests(CronViewTestCase):
    @patch("apps.cron.views.RuleEvaluator")
    def test_rejects_before_running_job(self, mock_evaluator):
        response = self.client.post(self.evaluate_url)

        self.assertEqual(response.status_code, 401)
        self.assertEqual(
            response.json(),
            {"error": "Unauthorized", "message": "Missing or invalid cron credentials"},
        )
        mock_evaluator.assert_not_called()

    def test_rejects_wrong_method_only_after_auth(self):
        self.assertEqual(self.client.get(self.notifications_url).status_code, 401)
        self.assertEqual(self.client.get(self.notifications_url, **AUTH).status_code, 405)

    def test_internal_secret_header(self):
        response = self.client.post(self.cleanup_url, HTTP_X_INTERNAL_CRON_SECRET="internal-s3cret")
        self.assertEqual(response.status_code, 200)

    def test_internal_secret_query(self):
        response = self.client.post(f"{self.cleanup_url}?secret=internal-s3cret")
        self.assertEqual(response.status_code, 200)


class EvaluateRulesViewTests(CronViewTestCase):
    def test_get_and_post_return_report(self):
        AlertRule.objects.create(
            org_id="acme",
            name="API errors",
            rule_type=RuleType.ERROR_COUNT,
            params={"threshold": 1, "windowMinutes": 5},
            severity="high",
        )
        LogEntry.objects.create(org_id="acme", level=LogLevel.ERROR, message="boom", ts=timezone.now())

        response = self.client.get(self.evaluate_url, **AUTH)

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["evaluated"], 1)
        self.assertEqual(data["triggeredCount"], 1)
        self.assertEqual(data["incidentsCreated"], 1)
        self.assertEqual(data["incidentsUpdated"], 0)
        self.assertEqual(data["triggeredRules"][0]["action"], "created")
        self.assertEqual(data["errors"], [])

        response = self.client.post(self.evaluate_url, **AUTH)
        self.assertEqual(response.json()["incidentsUpdated"], 1)

    @patch("apps.cron.views.RuleEvaluator.run", side_effect=RuntimeError("database exploded"))
    def test_failure_returns_500_and_records_failed_run(self, _mock_run):
        response = self.client.post(self.evaluate_url, **AUTH)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(),
            {"error": "Internal Server Error", "message": "rules.evaluate failed: database exploded"},
        )
        run = CronRun.objects.get(name="rules.evaluate")
        self.assertEqual(run.status, CronRunStatus.FAILED)
        self.assertEqual(run.meta, {"error": "database exploded"})

    def test_async_queues_task(self):
        task = MagicMock()
        task.delay.return_value.id = "task-123"

        with patch.object(views.EvaluateRulesView, "task", task):
            response = self.client.post(f"{self.evaluate_url}?async=true", **AUTH)

        self.assertEqual(response.status_code, 202)
        self.assertEqual(response.json(), {"status": "queued", "task_id": "task-123"})
        task.delay.assert_called_once_with()
        self.assertFalse(CronRun.objects.exists())

    def test_async_broker_failure_returns_json_500(self):
        task = MagicMock()
        task.delay.side_effect = ConnectionError("broker down")

        with patch.object(views.EvaluateRulesView, "task", task):
            response = self.client.post(f"{self.evaluate_url}?async=1", **AUTH)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response["Content-Type"], "application/json")
        self.assertEqual(
            response.json(),
            {"error": "Internal Server Error", "message": "rules.evaluate failed: broker down"},
        )
        run = CronRun.objects.get(name="rules.evaluate")
        self.assertEqual(run.status, CronRunStatus.FAILED)
        self.assertEqual(run.meta, {"error": "broker down"})


class ProcessNotificationsViewTests(CronViewTestCase):
    def test_nothing_due(self):
        response = self.client.post(self.notifications_url, **AUTH)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"processed": 0, "results": []})
        self.assertFalse(CronRun.objects.exists())

    def test_async_flag_is_case_insensitive(self):
        task = MagicMock()
        task.delay.return_value.id = "task-456"

        with patch.object(views.ProcessNotificationsView, "task", task):
            response = self.client.post(f"{self.notifications_url}?async=YES", **AUTH)

        self.assertEqual(response.status_code, 202)


class CleanupLogsViewTests(CronViewTestCase):
    def test_deletes_expired_entries(self):
        now = timezone.now()
        LogEntry.objects.create(org_id="acme", level=LogLevel.INFO, message="old", ts=now - timedelta(days=30))
        LogEntry.objects.create(org_id="acme", level=LogLevel.INFO, message="new", ts=now)

        response = self.client.post(self.cleanup_url, **AUTH)

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["deleted"], 1)
        self.assertIn("timestamp", data)
        self.assertEqual(LogEntry.objects.count(), 1)

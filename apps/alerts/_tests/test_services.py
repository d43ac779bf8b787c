from datetime import timedelta
from unittest.mock import patch

from django.db import IntegrityError, OperationalError
from django.test import TestCase
from django.utils import timezone

from apps.alerts.config import EvaluatorConfig
from apps.alerts.models import (
    AlertFiring,
    AlertRule,
    Incident,
    IncidentEventType,
    IncidentSource,
    IncidentStatus,
    RuleType,
)
from apps.alerts.services import IncidentManager, RuleEvaluator, cooldown_elapsed
from apps.cron.models import CronRun
from apps.notify.models import NotificationChannel, NotificationJob
from apps.telemetry.models import Deployment, DeploymentStatus, LogEntry, LogLevel

CONFIG = EvaluatorConfig(base_url="https://ops.example.com", default_window_minutes=5, default_threshold=10)


class CooldownTests(TestCase):
    def test_never_notified(self):
        self.assertTrue(cooldown_elapsed(None, timezone.now(), 300))

    def test_strictly_greater_than_cooldown(self):
        now = timezone.now()
        self.assertFalse(cooldown_elapsed(now - timedelta(seconds=300), now, 300))
        self.assertTrue(cooldown_elapsed(now - timedelta(seconds=301), now, 300))

    def test_zero_cooldown(self):
        now = timezone.now()
        self.assertTrue(cooldown_elapsed(now - timedelta(microseconds=1), now, 0))


class RuleEvaluatorTestCase(TestCase):
    def setUp(self):
        self.now = timezone.now()
        self.evaluator = RuleEvaluator(CONFIG)
        self.rule = AlertRule.objects.create(
            org_id="acme",
            name="API errors",
            rule_type=RuleType.ERROR_COUNT,
            params={"threshold": 2, "windowMinutes": 10},
            severity="high",
            cooldown_seconds=0,
        )

    def add_errors(self, count, org_id="acme", minutes_ago=1):
        for i in range(count):
            LogEntry.objects.create(
                org_id=org_id,
                level=LogLevel.ERROR,
                message=f"boom {i}",
                ts=self.now - timedelta(minutes=minutes_ago),
            )


class EndToEndScenarioTests(RuleEvaluatorTestCase):
    def test_create_then_update(self):
        self.add_errors(2)

        first = self.evaluator.run(now=self.now)
        self.assertEqual(first.incidents_created, 1)
        self.assertEqual(first.incidents_updated, 0)

        incident = Incident.objects.get()
        self.assertEqual(incident.status, IncidentStatus.OPEN)
        self.assertIn("error_count", incident.fingerprint)

        second = self.evaluator.run(now=self.now + timedelta(seconds=30))
        self.assertEqual(second.incidents_created, 0)
        self.assertEqual(second.incidents_updated, 1)
        self.assertEqual(Incident.objects.count(), 1)
        self.assertEqual(incident.events.filter(event_type=IncidentEventType.TRIGGER).count(), 1)

    def test_resolve_then_refire_with_zero_cooldown(self):
        self.add_errors(2)
        self.evaluator.run(now=self.now)
        first = Incident.objects.get()
        IncidentManager.resolve(first.pk, now=self.now)

        result = self.evaluator.run(now=self.now + timedelta(seconds=1))

        self.assertEqual(result.incidents_created, 1)
        self.assertEqual(Incident.objects.count(), 2)
        second = Incident.objects.exclude(pk=first.pk).get()
        self.assertEqual(second.status, IncidentStatus.OPEN)
        self.assertEqual(second.fingerprint, first.fingerprint)


class IdempotencyTests(RuleEvaluatorTestCase):
    def test_repeated_runs_never_duplicate(self):
        self.add_errors(2)
        self.evaluator.run(now=self.now)

        created = updated = 0
        for offset in (1, 2):
            result = self.evaluator.run(now=self.now + timedelta(seconds=offset))
            created += result.incidents_created
            updated += result.incidents_updated

        self.assertEqual(created, 0)
        self.assertEqual(updated, 2)
        self.assertEqual(Incident.objects.count(), 1)

    def test_investigating_incident_still_deduplicates(self):
        self.add_errors(2)
        self.evaluator.run(now=self.now)
        IncidentManager.investigate(Incident.objects.get().pk)

        result = self.evaluator.run(now=self.now + timedelta(seconds=1))
        self.assertEqual(result.incidents_created, 0)
        self.assertEqual(result.incidents_updated, 1)


class CooldownEnforcementTests(RuleEvaluatorTestCase):
    def setUp(self):
        super().setUp()
        self.rule.cooldown_seconds = 600
        self.rule.params = {"threshold": 2, "windowMinutes": 60}
        self.rule.save()
        self.add_errors(2)

    def test_no_new_incident_inside_cooldown(self):
        self.evaluator.run(now=self.now)
        IncidentManager.resolve(Incident.objects.get().pk)

        result = self.evaluator.run(now=self.now + timedelta(minutes=5))

        self.assertEqual(result.incidents_created, 0)
        self.assertEqual(result.incidents_updated, 0)
        self.assertEqual(result.triggered_count, 1)
        self.assertEqual(result.triggered_rules[0].action, "cooldown")
        self.assertIsNone(result.triggered_rules[0].incident_id)
        self.assertEqual(Incident.objects.count(), 1)
        self.assertEqual(NotificationJob.objects.count(), 0)

    def test_exactly_one_new_incident_after_cooldown(self):
        self.evaluator.run(now=self.now)
        IncidentManager.resolve(Incident.objects.get().pk)

        result = self.evaluator.run(now=self.now + timedelta(minutes=11))
        self.assertEqual(result.incidents_created, 1)

        again = self.evaluator.run(now=self.now + timedelta(minutes=12))
        self.assertEqual(again.incidents_created, 0)
        self.assertEqual(again.incidents_updated, 1)
        self.assertEqual(Incident.objects.count(), 2)


class FiringStateTests(RuleEvaluatorTestCase):
    def test_fired_at_moves_and_last_notified_only_on_create(self):
        self.add_errors(2)
        self.evaluator.run(now=self.now)

        firing = AlertFiring.objects.get(rule=self.rule)
        self.assertEqual(firing.fired_at, self.now)
        self.assertEqual(firing.last_notified_at, self.now)

        later = self.now + timedelta(minutes=1)
        self.evaluator.run(now=later)

        firing.refresh_from_db()
        self.assertEqual(firing.fired_at, later)
        self.assertEqual(firing.last_notified_at, self.now)
        self.assertEqual(AlertFiring.objects.count(), 1)

    def test_not_triggered_writes_nothing(self):
        self.add_errors(1)
        result = self.evaluator.run(now=self.now)

        self.assertEqual(result.triggered_count, 0)
        self.assertFalse(AlertFiring.objects.exists())
        self.assertFalse(Incident.objects.exists())


class IncidentContentTests(RuleEvaluatorTestCase):
    def test_incident_fields_and_created_event(self):
        self.rule.service_id = "api"
        self.rule.environment_id = "prod"
        self.rule.save()
        for _ in range(2):
            LogEntry.objects.create(
                org_id="acme", service_id="api", environment_id="prod", level=LogLevel.ERROR, message="x", ts=self.now
            )

        self.evaluator.run(now=self.now)

        incident = Incident.objects.get()
        self.assertEqual(incident.title, "Alert: API errors")
        self.assertEqual(
            incident.description,
            'Triggered by rule API errors. Context: {"count": 2, "threshold": 2, "windowMinutes": 10}',
        )
        self.assertEqual(incident.source, IncidentSource.ALERT)
        self.assertEqual(incident.severity, "high")
        self.assertEqual(incident.rule, self.rule)
        self.assertEqual(incident.service_id, "api")
        self.assertEqual(incident.environment_id, "prod")
        self.assertEqual(incident.fingerprint, "error_count:api:prod:10:2")

        event = incident.events.get()
        self.assertEqual(event.event_type, IncidentEventType.CREATED)
        self.assertEqual(event.message, 'Incident created by alert rule "API errors"')
        self.assertEqual(event.metadata, {"count": 2, "threshold": 2, "windowMinutes": 10})

    def test_long_rule_name_fits_incident_title(self):
        self.rule.name = "r" * 255
        self.rule.save()
        self.add_errors(2)

        result = self.evaluator.run(now=self.now)

        self.assertEqual(result.errors, [])
        self.assertEqual(result.incidents_created, 1)
        incident = Incident.objects.get()
        self.assertEqual(len(incident.title), 255)
        self.assertTrue(incident.title.startswith("Alert: rrr"))
        self.assertTrue(incident.title.endswith("…"))

    def test_trigger_event_message(self):
        self.add_errors(2)
        self.evaluator.run(now=self.now)
        self.evaluator.run(now=self.now + timedelta(seconds=1))

        event = Incident.objects.get().events.get(event_type=IncidentEventType.TRIGGER)
        self.assertEqual(
            event.message,
            'Alert condition re-detected: {"count": 2, "threshold": 2, "windowMinutes": 10}',
        )

    def test_deployment_failure_rule_end_to_end(self):
        rule = AlertRule.objects.create(
            org_id="acme",
            name="Deploys",
            rule_type=RuleType.DEPLOYMENT_FAILURE,
            severity="critical",
            cooldown_seconds=0,
        )
        deployment = Deployment.objects.create(org_id="acme", status=DeploymentStatus.TIMED_OUT)

        result = self.evaluator.run(now=self.now)

        incident = Incident.objects.get(rule=rule)
        self.assertEqual(incident.fingerprint, f"deployment_failure:all:all:{deployment.pk}")
        self.assertEqual(result.incidents_created, 1)


class NotificationEnqueueTests(RuleEvaluatorTestCase):
    def setUp(self):
        super().setUp()
        NotificationChannel.objects.create(
            org_id="acme", name="discord", driver="discord", config={"webhook_url": "https://discord.test/hook"}
        )
        NotificationChannel.objects.create(
            org_id="acme", name="slack", driver="slack", config={"webhook_url": "https://hooks.slack.test/x"}
        )
        NotificationChannel.objects.create(
            org_id="acme",
            name="muted",
            driver="slack",
            config={"webhook_url": "https://hooks.slack.test/y"},
            is_active=False,
        )
        NotificationChannel.objects.create(
            org_id="other", name="slack", driver="slack", config={"webhook_url": "https://hooks.slack.test/z"}
        )
        self.add_errors(2)

    def test_created_jobs_per_active_channel(self):
        self.evaluator.run(now=self.now)
        incident = Incident.objects.get()

        jobs = NotificationJob.objects.order_by("id")
        self.assertEqual([job.driver for job in jobs], ["discord", "slack"])
        for job in jobs:
            self.assertEqual(job.org_id, "acme")
            self.assertEqual(job.status, "pending")
            self.assertEqual(job.attempts, 0)
            self.assertEqual(job.next_attempt_at, self.now)
            self.assertEqual(job.payload["event"], "incident.created")
            self.assertEqual(job.payload["incident_id"], incident.pk)
            self.assertEqual(job.payload["title"], "[HIGH] API errors")
            self.assertEqual(job.payload["status"], "open")
            self.assertEqual(job.payload["severity"], "high")
            self.assertEqual(job.payload["link"], f"https://ops.example.com/incidents/{incident.pk}")

        self.assertEqual(jobs[0].payload["webhook_url"], "https://discord.test/hook")

    def test_update_jobs_carry_actual_status(self):
        self.evaluator.run(now=self.now)
        incident = Incident.objects.get()
        IncidentManager.investigate(incident.pk)

        self.evaluator.run(now=self.now + timedelta(seconds=1))

        updates = NotificationJob.objects.filter(payload__event="incident.updated")
        self.assertEqual(updates.count(), 2)
        for job in updates:
            self.assertEqual(job.payload["title"], "[UPDATE] API errors")
            self.assertEqual(job.payload["status"], "investigating")
            self.assertEqual(job.payload["context"], {"count": 2, "threshold": 2, "windowMinutes": 10})

    def test_created_jobs_carry_no_context(self):
        self.evaluator.run(now=self.now)
        for job in NotificationJob.objects.all():
            self.assertNotIn("context", job.payload)

    def test_no_channels_no_jobs(self):
        NotificationChannel.objects.all().delete()
        result = self.evaluator.run(now=self.now)

        self.assertEqual(result.incidents_created, 1)
        self.assertFalse(NotificationJob.objects.exists())


class FailureIsolationTests(RuleEvaluatorTestCase):
    def test_bad_rule_does_not_stop_others(self):
        bad = AlertRule.objects.create(
            org_id="acme",
            name="Broken",
            rule_type=RuleType.ERROR_COUNT,
            params={"threshold": "lots"},
        )
        self.add_errors(2)

        result = self.evaluator.run(now=self.now)

        self.assertEqual(result.evaluated, 2)
        self.assertEqual(result.incidents_created, 1)
        self.assertEqual(len(result.errors), 1)
        self.assertEqual(result.errors[0]["ruleId"], bad.pk)
        self.assertIn("threshold", result.errors[0]["error"])

    def test_unknown_rule_type_is_recorded(self):
        AlertRule.objects.create(org_id="acme", name="Mystery", rule_type="latency")
        result = self.evaluator.run(now=self.now)

        self.assertEqual(len(result.errors), 1)
        self.assertIn("Unknown rule type", result.errors[0]["error"])

    def test_database_outage_aborts_run(self):
        with patch("apps.alerts.services.get_rule_evaluator", side_effect=OperationalError("db down")):
            with self.assertRaises(OperationalError):
                self.evaluator.run(now=self.now)
        self.assertFalse(CronRun.objects.exists())

    def test_disabled_rules_are_skipped(self):
        self.rule.enabled = False
        self.rule.save()
        self.add_errors(5)

        result = self.evaluator.run(now=self.now)
        self.assertEqual(result.evaluated, 0)
        self.assertFalse(Incident.objects.exists())


class ConcurrentCreationTests(RuleEvaluatorTestCase):
    def test_integrity_error_falls_back_to_update(self):
        self.add_errors(2)
        fingerprint = "error_count:all:all:10:2"

        def concurrent_open(rule, fp, context, now):
            Incident.objects.create(
                org_id=rule.org_id,
                title="Alert: API errors",
                status=IncidentStatus.OPEN,
                source=IncidentSource.ALERT,
                rule=rule,
                fingerprint=fp,
            )
            raise IntegrityError("duplicate active incident")

        with patch.object(self.evaluator, "_open_incident", side_effect=concurrent_open):
            result = self.evaluator.run(now=self.now)

        self.assertEqual(result.incidents_created, 0)
        self.assertEqual(result.incidents_updated, 1)
        self.assertEqual(result.triggered_rules[0].action, "updated")
        incident = Incident.objects.get(fingerprint=fingerprint)
        self.assertEqual(incident.events.filter(event_type=IncidentEventType.TRIGGER).count(), 1)


class ReportTests(RuleEvaluatorTestCase):
    def test_report_shape(self):
        self.add_errors(2)
        data = self.evaluator.run(now=self.now).to_dict()
        incident = Incident.objects.get()

        self.assertEqual(data["evaluated"], 1)
        self.assertEqual(data["triggeredCount"], 1)
        self.assertEqual(data["incidentsCreated"], 1)
        self.assertEqual(data["incidentsUpdated"], 0)
        self.assertEqual(data["errors"], [])
        self.assertEqual(
            data["triggeredRules"],
            [
                {
                    "ruleId": self.rule.pk,
                    "name": "API errors",
                    "type": "error_count",
                    "context": {"count": 2, "threshold": 2, "windowMinutes": 10},
                    "fingerprint": "error_count:all:all:10:2",
                    "action": "created",
                    "incidentId": incident.pk,
                }
            ],
        )

    def test_run_record(self):
        self.add_errors(2)
        self.evaluator.run(now=self.now)

        run = CronRun.objects.get(name="rules.evaluate")
        self.assertEqual(
            run.meta,
            {"evaluated": 1, "triggered": 1, "incidentsCreated": 1, "incidentsUpdated": 0},
        )

    def test_run_record_written_with_no_rules(self):
        AlertRule.objects.all().delete()
        result = self.evaluator.run(now=self.now)

        self.assertEqual(result.evaluated, 0)
        self.assertTrue(CronRun.objects.filter(name="rules.evaluate").exists())


class IncidentManagerTests(TestCase):
    def test_create_manual(self):
        incident = IncidentManager.create_manual(
            "acme", "Checkout slow", severity="med", description="p95 up", service_id="web", actor="bob"
        )

        self.assertEqual(incident.source, IncidentSource.MANUAL)
        self.assertEqual(incident.status, IncidentStatus.OPEN)
        self.assertIsNone(incident.rule)
        event = incident.events.get()
        self.assertEqual(event.event_type, IncidentEventType.CREATED)
        self.assertEqual(event.actor, "bob")

    def test_create_manual_rejects_bad_severity(self):
        with self.assertRaises(ValueError):
            IncidentManager.create_manual("acme", "x", severity="urgent")

    def test_status_flow(self):
        incident = IncidentManager.create_manual("acme", "x")
        now = timezone.now()

        IncidentManager.investigate(incident.pk, actor="alice", now=now)
        resolved = IncidentManager.resolve(incident.pk, actor="alice", now=now)
        self.assertEqual(resolved.resolved_at, now)

        reopened = IncidentManager.reopen(incident.pk, actor="alice")
        self.assertEqual(reopened.status, IncidentStatus.OPEN)
        self.assertIsNone(reopened.resolved_at)

        types = list(IncidentManager.get_timeline(incident.pk).values_list("event_type", flat=True))
        self.assertEqual(types, ["created", "status_change", "status_change", "status_change"])

    def test_reopen_conflicting_with_active_incident(self):
        rule = AlertRule.objects.create(org_id="acme", name="r", rule_type=RuleType.ERROR_COUNT)
        old = Incident.objects.create(
            org_id="acme", title="old", rule=rule, fingerprint="fp", status=IncidentStatus.RESOLVED
        )
        Incident.objects.create(org_id="acme", title="new", rule=rule, fingerprint="fp")

        with self.assertRaises(IntegrityError):
            IncidentManager.reopen(old.pk)

        old.refresh_from_db()
        self.assertEqual(old.status, IncidentStatus.RESOLVED)

    def test_add_note(self):
        incident = IncidentManager.create_manual("acme", "x")
        note = IncidentManager.add_note(incident.pk, "Rolled back", actor="carol")

        self.assertEqual(note.event_type, IncidentEventType.NOTE)
        self.assertEqual(note.message, "Rolled back")
        self.assertEqual(note.actor, "carol")

    def test_get_active_incidents(self):
        a = IncidentManager.create_manual("acme", "a")
        b = IncidentManager.create_manual("acme", "b")
        IncidentManager.create_manual("other", "c")
        IncidentManager.resolve(a.pk)

        self.assertEqual(list(IncidentManager.get_active_incidents("acme")), [b])
        self.assertEqual(IncidentManager.get_active_incidents().count(), 2)

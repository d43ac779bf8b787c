"""
Alert evaluation and incident lifecycle services.

`RuleEvaluator` runs every enabled rule, deduplicates against ongoing
incidents, applies the cooldown and enqueues notifications.
`IncidentManager` covers operator-driven incident changes.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from django.db import IntegrityError, InterfaceError, OperationalError, transaction
from django.utils import timezone
from django.utils.text import Truncator

from apps.alerts.config import EvaluatorConfig
from apps.alerts.models import (
    AlertFiring,
    AlertRule,
    AlertSeverity,
    Incident,
    IncidentEvent,
    IncidentEventType,
    IncidentSource,
    IncidentStatus,
)
from apps.alerts.rules import RuleResult, get_rule_evaluator
from apps.cron.models import CronRun
from apps.notify.drivers import INCIDENT_CREATED, INCIDENT_UPDATED
from apps.notify.services import NotificationDispatcher, NotificationEvent

logger = logging.getLogger(__name__)

JOB_NAME = "rules.evaluate"

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"
ACTION_COOLDOWN = "cooldown"


@dataclass
class TriggeredRule:
    """A rule whose condition held during a run, and what was done about it."""

    rule_id: int
    name: str
    rule_type: str
    context: dict[str, Any]
    fingerprint: str
    action: str
    incident_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "name": self.name,
            "type": self.rule_type,
            "context": self.context,
            "fingerprint": self.fingerprint,
            "action": self.action,
            "incidentId": self.incident_id,
        }


@dataclass
class EvaluationResult:
    """Report of one evaluation run."""

    evaluated: int = 0
    incidents_created: int = 0
    incidents_updated: int = 0
    triggered_rules: list[TriggeredRule] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def triggered_count(self) -> int:
        return len(self.triggered_rules)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "evaluated": self.evaluated,
            "triggeredCount": self.triggered_count,
            "incidentsCreated": self.incidents_created,
            "incidentsUpdated": self.incidents_updated,
            "triggeredRules": [rule.to_dict() for rule in self.triggered_rules],
            "errors": self.errors,
        }


def cooldown_elapsed(last_notified_at: datetime | None, now: datetime, cooldown_seconds: int) -> bool:
    """True when a new incident may be opened for a fingerprint."""
    if last_notified_at is None:
        return True
    return (now - last_notified_at).total_seconds() > cooldown_seconds


class RuleEvaluator:
    """
    Evaluates all enabled alert rules once.

    For each rule whose condition holds:
    1. Upserts the firing state for (rule, fingerprint)
    2. Appends a trigger event to the ongoing incident, if there is one
    3. Otherwise opens a new incident when the cooldown has elapsed
    4. Enqueues a created/updated notification for each active channel

    A rule that fails to evaluate is recorded in `errors` and skipped.
    Database connectivity errors abort the run.

    Usage:
        result = RuleEvaluator(EvaluatorConfig.from_settings()).run()
    """

    def __init__(self, config: EvaluatorConfig | None = None):
        self.config = config or EvaluatorConfig.from_settings()

    def run(self, now: datetime | None = None) -> EvaluationResult:
        started_at = timezone.now()
        now = now or started_at
        result = EvaluationResult()

        rules = list(AlertRule.objects.filter(enabled=True).order_by("id"))
        result.evaluated = len(rules)
        logger.info(f"Evaluating {len(rules)} enabled alert rule(s)")

        for rule in rules:
            try:
                outcome = self._check_rule(rule, now)
                if outcome.triggered:
                    result.triggered_rules.append(self._handle_trigger(rule, outcome, now, result))
            except (OperationalError, InterfaceError):
                raise
            except Exception as e:
                logger.warning(f"Failed to evaluate rule {rule.pk} ({rule.name}): {e}")
                result.errors.append({"ruleId": rule.pk, "error": str(e)})

        CronRun.record(
            JOB_NAME,
            started_at=started_at,
            meta={
                "evaluated": result.evaluated,
                "triggered": result.triggered_count,
                "incidentsCreated": result.incidents_created,
                "incidentsUpdated": result.incidents_updated,
            },
        )
        logger.info(
            f"Rule evaluation finished: {result.triggered_count} triggered, "
            f"{result.incidents_created} created, {result.incidents_updated} updated, "
            f"{len(result.errors)} error(s)"
        )
        return result

    def _check_rule(self, rule: AlertRule, now: datetime) -> RuleResult:
        evaluator = get_rule_evaluator(rule.rule_type, self.config)
        return evaluator.evaluate(rule, now)

    def _handle_trigger(
        self,
        rule: AlertRule,
        outcome: RuleResult,
        now: datetime,
        result: EvaluationResult,
    ) -> TriggeredRule:
        fingerprint = outcome.fingerprint
        last_notified_at = self._touch_firing(rule, fingerprint, now)

        triggered = TriggeredRule(
            rule_id=rule.pk,
            name=rule.name,
            rule_type=rule.rule_type,
            context=outcome.context,
            fingerprint=fingerprint,
            action=ACTION_COOLDOWN,
        )

        ongoing = (
            Incident.objects.active().for_fingerprint(rule.org_id, rule, fingerprint).order_by("id").first()
        )
        if ongoing is None:
            if not cooldown_elapsed(last_notified_at, now, rule.cooldown_seconds):
                logger.info(f"Rule {rule.pk} firing for {fingerprint} but still in cooldown")
                return triggered
            try:
                incident = self._open_incident(rule, fingerprint, outcome.context, now)
            except IntegrityError:
                # A concurrent run opened the incident first.
                ongoing = (
                    Incident.objects.active().for_fingerprint(rule.org_id, rule, fingerprint).order_by("id").first()
                )
                if ongoing is None:
                    raise
            else:
                result.incidents_created += 1
                triggered.action = ACTION_CREATED
                triggered.incident_id = incident.pk
                return triggered

        self._record_retrigger(rule, ongoing, outcome.context, now)
        result.incidents_updated += 1
        triggered.action = ACTION_UPDATED
        triggered.incident_id = ongoing.pk
        return triggered

    def _touch_firing(self, rule: AlertRule, fingerprint: str, now: datetime) -> datetime | None:
        """Upsert the firing row and return its previous last_notified_at."""
        with transaction.atomic():
            firing, created = AlertFiring.objects.select_for_update().get_or_create(
                rule=rule,
                fingerprint=fingerprint,
                defaults={"fired_at": now},
            )
            if not created:
                firing.fired_at = now
                firing.save(update_fields=["fired_at"])
        return firing.last_notified_at

    def _open_incident(self, rule: AlertRule, fingerprint: str, context: dict, now: datetime) -> Incident:
        context_json = json.dumps(context)
        with transaction.atomic():
            incident = Incident.objects.create(
                org_id=rule.org_id,
                service_id=rule.service_id,
                environment_id=rule.environment_id,
                title=Truncator(f"Alert: {rule.name}").chars(Incident._meta.get_field("title").max_length),
                description=f"Triggered by rule {rule.name}. Context: {context_json}",
                severity=rule.severity,
                status=IncidentStatus.OPEN,
                source=IncidentSource.ALERT,
                rule=rule,
                fingerprint=fingerprint,
                created_at=now,
            )
            incident.add_event(
                IncidentEventType.CREATED,
                f'Incident created by alert rule "{rule.name}"',
                metadata=context,
                created_at=now,
            )
            AlertFiring.objects.filter(rule=rule, fingerprint=fingerprint).update(last_notified_at=now)

            NotificationDispatcher.enqueue(
                rule.org_id,
                NotificationEvent(
                    event=INCIDENT_CREATED,
                    incident_id=incident.pk,
                    title=f"[{rule.severity.upper()}] {rule.name}",
                    status=incident.status,
                    link=self.config.incident_link(incident.pk),
                    severity=rule.severity,
                    service=rule.service_id,
                    environment=rule.environment_id,
                ),
                now=now,
            )

        logger.info(f"Opened incident {incident.pk} for rule {rule.pk} ({fingerprint})")
        return incident

    def _record_retrigger(self, rule: AlertRule, incident: Incident, context: dict, now: datetime):
        with transaction.atomic():
            incident.add_event(
                IncidentEventType.TRIGGER,
                f"Alert condition re-detected: {json.dumps(context)}",
                metadata=context,
                created_at=now,
            )
            NotificationDispatcher.enqueue(
                rule.org_id,
                NotificationEvent(
                    event=INCIDENT_UPDATED,
                    incident_id=incident.pk,
                    title=f"[UPDATE] {rule.name}",
                    status=incident.status,
                    link=self.config.incident_link(incident.pk),
                    severity=rule.severity,
                    service=rule.service_id,
                    environment=rule.environment_id,
                    context=context,
                ),
                now=now,
            )
        logger.info(f"Rule {rule.pk} still firing on incident {incident.pk}")


class IncidentManager:
    """
    Service for operator-driven incident changes.

    Every status change goes through `Incident.transition_to()`, which keeps
    resolved_at consistent and appends a status_change event.
    """

    @staticmethod
    def change_status(incident_id: int, new_status: str, actor: str = "", now=None) -> Incident:
        incident = Incident.objects.get(pk=incident_id)
        old_status = incident.status
        if incident.transition_to(new_status, actor=actor, now=now) is not None:
            logger.info(f"Incident {incident.pk} moved {old_status} -> {new_status} by {actor or 'system'}")
        return incident

    @classmethod
    def investigate(cls, incident_id: int, actor: str = "", now=None) -> Incident:
        return cls.change_status(incident_id, IncidentStatus.INVESTIGATING, actor=actor, now=now)

    @classmethod
    def resolve(cls, incident_id: int, actor: str = "", now=None) -> Incident:
        return cls.change_status(incident_id, IncidentStatus.RESOLVED, actor=actor, now=now)

    @classmethod
    def reopen(cls, incident_id: int, actor: str = "", now=None) -> Incident:
        """
        Move a resolved incident back to open.

        Raises:
            IntegrityError: If another incident is already active for the same
                rule and fingerprint.
        """
        return cls.change_status(incident_id, IncidentStatus.OPEN, actor=actor, now=now)

    @staticmethod
    def create_manual(
        org_id: str,
        title: str,
        severity: str = AlertSeverity.HIGH,
        description: str = "",
        service_id: str | None = None,
        environment_id: str | None = None,
        actor: str = "",
    ) -> Incident:
        """Open an incident by hand (source=manual)."""
        if severity not in AlertSeverity.values:
            raise ValueError(f"Invalid severity: {severity}")

        with transaction.atomic():
            incident = Incident.objects.create(
                org_id=org_id,
                service_id=service_id,
                environment_id=environment_id,
                title=title,
                description=description,
                severity=severity,
                status=IncidentStatus.OPEN,
                source=IncidentSource.MANUAL,
            )
            incident.add_event(
                IncidentEventType.CREATED,
                f"Incident created manually by {actor}" if actor else "Incident created manually",
                actor=actor,
            )

        logger.info(f"Manual incident created: {incident.title}")
        return incident

    @staticmethod
    def add_note(incident_id: int, note: str, actor: str = "") -> IncidentEvent:
        incident = Incident.objects.get(pk=incident_id)
        return incident.add_event(IncidentEventType.NOTE, note, actor=actor)

    @staticmethod
    def get_active_incidents(org_id: str | None = None):
        queryset = Incident.objects.active()
        if org_id:
            queryset = queryset.filter(org_id=org_id)
        return queryset.order_by("-created_at")

    @staticmethod
    def get_timeline(incident_id: int):
        return IncidentEvent.objects.filter(incident_id=incident_id).order_by("created_at", "id")

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import apps.alerts.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AlertRule",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("org_id", models.CharField(db_index=True, max_length=64)),
                ("service_id", models.CharField(blank=True, max_length=64, null=True)),
                ("environment_id", models.CharField(blank=True, max_length=64, null=True)),
                ("name", models.CharField(max_length=255)),
                (
                    "rule_type",
                    models.CharField(
                        choices=[("error_count", "Error count"), ("deployment_failure", "Deployment failure")],
                        help_text="Which evaluator checks this rule.",
                        max_length=50,
                    ),
                ),
                (
                    "params",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text='Type-specific parameters, e.g. {"threshold": 10, "windowMinutes": 5}.',
                    ),
                ),
                (
                    "severity",
                    models.CharField(
                        choices=[("critical", "Critical"), ("high", "High"), ("med", "Medium"), ("low", "Low")],
                        default="high",
                        max_length=20,
                    ),
                ),
                ("enabled", models.BooleanField(db_index=True, default=True)),
                (
                    "cooldown_seconds",
                    models.PositiveIntegerField(
                        default=apps.alerts.models.default_cooldown_seconds,
                        help_text="Minimum seconds between incidents for the same fingerprint.",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["org_id", "name"],
                "indexes": [models.Index(fields=["enabled", "org_id"], name="alerts_aler_enabled_4b7e1d_idx")],
            },
        ),
        migrations.CreateModel(
            name="AlertFiring",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("fingerprint", models.CharField(max_length=255)),
                ("fired_at", models.DateTimeField()),
                ("last_notified_at", models.DateTimeField(blank=True, null=True)),
                (
                    "rule",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="firings",
                        to="alerts.alertrule",
                    ),
                ),
            ],
            options={
                "ordering": ["-fired_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("rule", "fingerprint"),
                        name="uniq_alert_firing_rule_fingerprint",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Incident",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("org_id", models.CharField(db_index=True, max_length=64)),
                ("service_id", models.CharField(blank=True, max_length=64, null=True)),
                ("environment_id", models.CharField(blank=True, max_length=64, null=True)),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "severity",
                    models.CharField(
                        choices=[("critical", "Critical"), ("high", "High"), ("med", "Medium"), ("low", "Low")],
                        db_index=True,
                        default="high",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("open", "Open"), ("investigating", "Investigating"), ("resolved", "Resolved")],
                        db_index=True,
                        default="open",
                        max_length=20,
                    ),
                ),
                (
                    "source",
                    models.CharField(
                        choices=[("manual", "Manual"), ("alert", "Alert")],
                        default="manual",
                        max_length=20,
                    ),
                ),
                ("fingerprint", models.CharField(blank=True, db_index=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                (
                    "rule",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="incidents",
                        to="alerts.alertrule",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["org_id", "status"], name="alerts_inci_org_id_7d0c55_idx"),
                    models.Index(fields=["created_at"], name="alerts_inci_created_2e91aa_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status__in", ["open", "investigating"])),
                        fields=("org_id", "rule", "fingerprint"),
                        name="uniq_active_incident_per_fingerprint",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="IncidentEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("created", "Created"),
                            ("trigger", "Trigger"),
                            ("status_change", "Status change"),
                            ("note", "Note"),
                        ],
                        max_length=30,
                    ),
                ),
                ("message", models.TextField(blank=True, default="")),
                (
                    "actor",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Who caused the event (empty for the evaluator).",
                        max_length=255,
                    ),
                ),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "incident",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="events",
                        to="alerts.incident",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
            },
        ),
    ]

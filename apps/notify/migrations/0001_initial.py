import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="NotificationChannel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("org_id", models.CharField(db_index=True, max_length=64)),
                (
                    "name",
                    models.CharField(
                        help_text="Name for this channel (e.g., 'ops-slack', 'oncall-discord').",
                        max_length=100,
                    ),
                ),
                (
                    "driver",
                    models.CharField(
                        choices=[("discord", "Discord"), ("slack", "Slack")],
                        db_index=True,
                        help_text="Driver type (discord or slack).",
                        max_length=50,
                    ),
                ),
                (
                    "config",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text='Driver configuration, e.g. {"webhook_url": "https://..."}.',
                    ),
                ),
                (
                    "is_active",
                    models.BooleanField(
                        db_index=True,
                        default=True,
                        help_text="Whether this channel receives notifications.",
                    ),
                ),
                (
                    "description",
                    models.TextField(blank=True, default="", help_text="Description of this channel's purpose."),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["org_id", "name"],
                "constraints": [
                    models.UniqueConstraint(fields=("org_id", "name"), name="uniq_notify_channel_org_name")
                ],
            },
        ),
        migrations.CreateModel(
            name="NotificationJob",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("org_id", models.CharField(db_index=True, max_length=64)),
                (
                    "driver",
                    models.CharField(
                        help_text="Channel type at enqueue time; selects the message shape.",
                        max_length=50,
                    ),
                ),
                ("payload", models.JSONField(blank=True, default=dict)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("sent", "Sent"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("attempts", models.PositiveIntegerField(default=0)),
                ("next_attempt_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("last_error", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "channel",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="jobs",
                        to="notify.notificationchannel",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "next_attempt_at"], name="notify_noti_status_9c3e7b_idx"),
                    models.Index(fields=["org_id", "created_at"], name="notify_noti_org_id_41f8d2_idx"),
                ],
            },
        ),
    ]

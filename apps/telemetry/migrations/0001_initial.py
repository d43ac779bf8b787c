import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Deployment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("org_id", models.CharField(db_index=True, max_length=64)),
                ("service_id", models.CharField(blank=True, max_length=64, null=True)),
                ("environment_id", models.CharField(blank=True, max_length=64, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("queued", "Queued"),
                            ("in_progress", "In progress"),
                            ("success", "Success"),
                            ("failure", "Failure"),
                            ("timed_out", "Timed out"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="queued",
                        max_length=20,
                    ),
                ),
                ("commit_sha", models.CharField(blank=True, default="", max_length=64)),
                ("ref", models.CharField(blank=True, default="", max_length=255)),
                ("url", models.URLField(blank=True, default="", max_length=500)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["org_id", "service_id", "environment_id", "created_at"],
                        name="telemetry_d_org_id_5c1f0e_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="LogEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("org_id", models.CharField(db_index=True, max_length=64)),
                ("service_id", models.CharField(blank=True, max_length=64, null=True)),
                ("environment_id", models.CharField(blank=True, max_length=64, null=True)),
                (
                    "level",
                    models.CharField(
                        choices=[("debug", "Debug"), ("info", "Info"), ("warn", "Warn"), ("error", "Error")],
                        default="info",
                        max_length=10,
                    ),
                ),
                ("message", models.TextField()),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "ts",
                    models.DateTimeField(
                        default=django.utils.timezone.now,
                        help_text="When the log line was emitted.",
                    ),
                ),
            ],
            options={
                "ordering": ["-ts"],
                "verbose_name_plural": "Log entries",
                "indexes": [
                    models.Index(fields=["org_id", "level", "ts"], name="telemetry_l_org_id_8a2d41_idx"),
                    models.Index(
                        fields=["org_id", "service_id", "environment_id", "ts"],
                        name="telemetry_l_org_id_e07b93_idx",
                    ),
                ],
            },
        ),
    ]

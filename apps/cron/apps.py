"""Django app configuration for the cron app."""

from django.apps import AppConfig


class CronConfig(AppConfig):
    """Configuration for the scheduled jobs app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.cron"
    verbose_name = "Scheduled Jobs"

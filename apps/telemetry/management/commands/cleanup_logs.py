"""
Management command to delete log entries older than the retention window.

Usage:
    python manage.py cleanup_logs
    python manage.py cleanup_logs --days 30 --json
"""

import json

from django.core.management.base import BaseCommand, CommandError

from apps.telemetry.services import CleanupConfig, LogRetentionService


class Command(BaseCommand):
    help = "Delete log entries older than LOG_RETENTION_DAYS"

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            help="Override the retention window in days.",
        )
        parser.add_argument(
            "--json",
            action="store_true",
            dest="json_output",
            help="Output result as JSON.",
        )

    def handle(self, *args, **options):
        config = CleanupConfig.from_settings()
        if options.get("days") is not None:
            if options["days"] < 1:
                raise CommandError("--days must be a positive integer.")
            config = CleanupConfig(retention_days=options["days"])

        result = LogRetentionService(config).run()

        if options["json_output"]:
            self.stdout.write(json.dumps(result.to_dict(), indent=2))
        else:
            self.stdout.write(self.style.SUCCESS(f"Deleted {result.deleted} log entries."))

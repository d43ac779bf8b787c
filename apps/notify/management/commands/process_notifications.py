"""
Management command to deliver due notification jobs.

Usage:
    python manage.py process_notifications
    python manage.py process_notifications --batch-size 50 --json
"""

import json
from dataclasses import replace

from django.core.management.base import BaseCommand, CommandError

from apps.notify.worker import NotificationWorker, WorkerConfig


class Command(BaseCommand):
    help = "Deliver one batch of due notification jobs"

    def add_arguments(self, parser):
        parser.add_argument(
            "--batch-size",
            type=int,
            help="Override the number of jobs picked up in this run.",
        )
        parser.add_argument(
            "--json",
            action="store_true",
            dest="json_output",
            help="Output result as JSON.",
        )

    def handle(self, *args, **options):
        config = WorkerConfig.from_settings()
        batch_size = options.get("batch_size")
        if batch_size is not None:
            if batch_size < 1:
                raise CommandError("--batch-size must be a positive integer.")
            config = replace(config, batch_size=batch_size)

        result = NotificationWorker(config).run()

        if options["json_output"]:
            self.stdout.write(json.dumps(result.to_dict(), indent=2))
            return

        if not result.processed:
            self.stdout.write("No notification jobs due.")
            return

        self.stdout.write(self.style.SUCCESS(f"Processed: {result.processed}"))
        for outcome in result.results:
            line = f"  job {outcome.id}: {outcome.status}"
            if outcome.error:
                self.stdout.write(self.style.WARNING(f"{line} ({outcome.error})"))
            else:
                self.stdout.write(line)

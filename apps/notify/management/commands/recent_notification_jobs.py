"""
Management command to list the most recent notification jobs of an organization.

Usage:
    python manage.py recent_notification_jobs --org acme
    python manage.py recent_notification_jobs --org acme --limit 10 --json
"""

import json

from django.core.management.base import BaseCommand, CommandError

from apps.notify.models import NotificationJob


class Command(BaseCommand):
    help = "List recent notification jobs (newest first) with their delivery state"

    def add_arguments(self, parser):
        parser.add_argument("--org", required=True, dest="org_id", help="Organization id.")
        parser.add_argument("--limit", type=int, default=25, help="Maximum jobs to show (default 25).")
        parser.add_argument(
            "--json",
            action="store_true",
            dest="json_output",
            help="Output result as JSON.",
        )

    def handle(self, *args, **options):
        limit = options["limit"]
        if limit < 1:
            raise CommandError("--limit must be a positive integer.")

        jobs = NotificationJob.objects.recent(options["org_id"], limit=limit)
        rows = [
            {
                "id": job.pk,
                "type": job.driver,
                "status": job.status,
                "attempts": job.attempts,
                "lastError": job.last_error,
                "createdAt": job.created_at.isoformat(),
                "nextAttemptAt": job.next_attempt_at.isoformat(),
            }
            for job in jobs
        ]

        if options["json_output"]:
            self.stdout.write(json.dumps({"data": rows}, indent=2))
            return

        if not rows:
            self.stdout.write("No notification jobs.")
            return

        self.stdout.write(self.style.SUCCESS(f"Recent notification jobs for {options['org_id']}"))
        self.stdout.write("-" * 60)
        for row in rows:
            line = f"{row['id']:>6}  {row['type']:<8} {row['status']:<10} attempts={row['attempts']}"
            if row["lastError"]:
                line += f"  error={row['lastError'][:60]}"
            self.stdout.write(line)

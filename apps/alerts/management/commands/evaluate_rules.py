"""
Management command to evaluate all enabled alert rules once.

Usage:
    python manage.py evaluate_rules

    # Output the run report as JSON
    python manage.py evaluate_rules --json

    # Override error_count defaults for this run
    python manage.py evaluate_rules --default-threshold 20 --default-window 10
"""

import json
from dataclasses import replace

from django.core.management.base import BaseCommand, CommandError

from apps.alerts.config import EvaluatorConfig
from apps.alerts.services import RuleEvaluator


class Command(BaseCommand):
    help = "Evaluate enabled alert rules and open/update incidents"

    def add_arguments(self, parser):
        parser.add_argument(
            "--json",
            action="store_true",
            dest="json_output",
            help="Output result as JSON.",
        )
        parser.add_argument(
            "--default-threshold",
            type=int,
            help="error_count threshold for rules that leave it unset.",
        )
        parser.add_argument(
            "--default-window",
            type=int,
            help="error_count window (minutes) for rules that leave it unset.",
        )

    def handle(self, *args, **options):
        config = EvaluatorConfig.from_settings()

        overrides = {}
        for option, field_name in (
            ("default_threshold", "default_threshold"),
            ("default_window", "default_window_minutes"),
        ):
            value = options.get(option)
            if value is None:
                continue
            if value < 1:
                raise CommandError(f"--{option.replace('_', '-')} must be a positive integer.")
            overrides[field_name] = value
        if overrides:
            config = replace(config, **overrides)

        result = RuleEvaluator(config).run()

        if options["json_output"]:
            self.stdout.write(json.dumps(result.to_dict(), indent=2))
            return

        self.stdout.write(self.style.SUCCESS(f"Rules evaluated: {result.evaluated}"))
        self.stdout.write(f"Triggered: {result.triggered_count}")
        self.stdout.write(f"Incidents created: {result.incidents_created}")
        self.stdout.write(f"Incidents updated: {result.incidents_updated}")

        for triggered in result.triggered_rules:
            self.stdout.write(f"  - {triggered.name} [{triggered.action}] {triggered.fingerprint}")

        for error in result.errors:
            self.stdout.write(self.style.ERROR(f"  ! rule {error['ruleId']}: {error['error']}"))

"""Celery application for the background jobs.

The evaluator, the notification worker and log cleanup are plain functions
that an external scheduler normally triggers over HTTP. The same jobs are
exposed as Celery tasks (apps/cron/tasks.py) so they can also run from a
worker, optionally driven by `celery beat`:

- celery -A config worker -l info
- celery -A config beat -l info
"""

from __future__ import annotations

import os

from celery import Celery

from config.env import load_env

load_env()

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("ops-alerting")

# CELERY_* names in Django settings configure the app.
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()

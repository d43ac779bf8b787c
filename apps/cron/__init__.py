"""
Cron app.

Entry points for the scheduled batch jobs:
- rules.evaluate: alert rule evaluation (apps.alerts)
- notifications.process: notification delivery (apps.notify)
- logs.cleanup: log retention (apps.telemetry)

Each job is a single bounded unit of work triggered by an external scheduler
over HTTP (shared-secret auth), by a management command, or by a Celery task.
Every run leaves a CronRun record behind.
"""

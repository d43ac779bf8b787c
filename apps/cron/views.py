"""
HTTP trigger endpoints for the scheduled jobs.

An external scheduler calls these on a fixed interval. Every endpoint requires
a cron credential (see apps.cron.auth) and runs one job invocation
synchronously, or queues it on Celery with `?async=1`.
"""

import logging
from typing import Any

from django.http import JsonResponse
from django.utils import timezone
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from apps.alerts.services import RuleEvaluator
from apps.cron import tasks
from apps.cron.auth import validate_cron_request
from apps.cron.models import CronRun
from apps.notify.worker import NotificationWorker
from apps.telemetry.services import LogRetentionService

logger = logging.getLogger(__name__)

ASYNC_VALUES = {"1", "true", "yes"}


class JSONResponseMixin:
    """Mixin for JSON responses."""

    def json_response(self, data: Any, status: int = 200) -> JsonResponse:
        return JsonResponse(data, status=status)

    def error_response(self, error: str, message: str, status: int = 400) -> JsonResponse:
        return JsonResponse({"error": error, "message": message}, status=status)


@method_decorator(csrf_exempt, name="dispatch")
class CronJobView(JSONResponseMixin, View):
    """
    Base view for a cron-triggered job.

    Subclasses set `job_name` and `task`, and implement `run_job()` returning
    a result object with `to_dict()`.
    """

    job_name: str = ""
    task = None
    http_method_names = ["post"]

    def dispatch(self, request, *args, **kwargs):
        if not validate_cron_request(request):
            logger.warning(f"Rejected unauthorized cron request for {self.job_name}")
            return self.error_response("Unauthorized", "Missing or invalid cron credentials", status=401)
        return super().dispatch(request, *args, **kwargs)

    def post(self, request):
        return self.trigger(request)

    def trigger(self, request):
        queued = request.GET.get("async", "").lower() in ASYNC_VALUES
        started_at = timezone.now()
        try:
            if queued:
                task_result = self.task.delay()
            else:
                result = self.run_job()
        except Exception as e:
            logger.exception(f"Cron job {self.job_name} failed")
            CronRun.record_failure(self.job_name, started_at, e)
            return self.error_response("Internal Server Error", f"{self.job_name} failed: {e}", status=500)

        if queued:
            return self.json_response({"status": "queued", "task_id": task_result.id}, status=202)
        return self.json_response(result.to_dict())

    def run_job(self):
        raise NotImplementedError


class EvaluateRulesView(CronJobView):
    """
    GET|POST /internal/cron/evaluate/

    Returns the evaluation report:
    {"evaluated", "triggeredCount", "incidentsCreated", "incidentsUpdated",
     "triggeredRules": [...], "errors": [...]}
    """

    job_name = "rules.evaluate"
    task = tasks.evaluate_rules_task
    http_method_names = ["get", "post"]

    def get(self, request):
        return self.trigger(request)

    def run_job(self):
        return RuleEvaluator().run()


class ProcessNotificationsView(CronJobView):
    """POST /internal/cron/notifications/ -> {"processed", "results": [{"id", "status", "error"?}]}"""

    job_name = "notifications.process"
    task = tasks.process_notifications_task

    def run_job(self):
        return NotificationWorker().run()


class CleanupLogsView(CronJobView):
    """POST /internal/cron/cleanup/ -> {"deleted", "timestamp"}"""

    job_name = "logs.cleanup"
    task = tasks.cleanup_logs_task

    def run_job(self):
        return LogRetentionService().run()

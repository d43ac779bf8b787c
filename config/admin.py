"""Admin site for the ops alerting console."""

import json
from datetime import timedelta

from django.contrib.admin import AdminSite
from django.db.models import Count, Q
from django.utils import timezone
from django.utils.html import format_html


def prettify_json(value) -> str:
    """Render a JSON-compatible value as an indented <pre> block."""
    if value in (None, "", {}, []):
        return "-"
    return format_html(
        '<pre style="white-space: pre-wrap; margin: 0;">{}</pre>',
        json.dumps(value, indent=2, sort_keys=True, default=str),
    )


class OpsAdminSite(AdminSite):
    site_header = "Ops Alerting"
    site_title = "Ops Alerting"
    index_title = "Dashboard"
    index_template = "admin/dashboard.html"

    def index(self, request, extra_context=None):
        extra_context = extra_context or {}
        extra_context.update(self._get_dashboard_context())
        return super().index(request, extra_context=extra_context)

    def _get_dashboard_context(self):
        from apps.alerts.models import Incident, IncidentStatus
        from apps.cron.models import CronRun
        from apps.notify.models import NotificationJob

        last_24h = timezone.now() - timedelta(hours=24)

        active_incidents = Incident.objects.filter(
            status__in=IncidentStatus.active()
        ).aggregate(
            total=Count("id"),
            open=Count("id", filter=Q(status=IncidentStatus.OPEN)),
            investigating=Count("id", filter=Q(status=IncidentStatus.INVESTIGATING)),
        )

        job_counts = dict(
            NotificationJob.objects.filter(created_at__gte=last_24h)
            .order_by()
            .values("status")
            .annotate(count=Count("id"))
            .values_list("status", "count")
        )

        recent_runs = list(
            CronRun.objects.order_by("-started_at").only(
                "name", "status", "started_at", "finished_at"
            )[:10]
        )

        return {
            "active_incidents": active_incidents,
            "job_counts": job_counts,
            "recent_runs": recent_runs,
        }

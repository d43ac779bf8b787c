"""Admin configuration for notify models."""

from django.contrib import admin
from django.db import models as db_models
from django.utils import timezone
from django_json_widget.widgets import JSONEditorWidget

from apps.notify.models import JobStatus, NotificationChannel, NotificationJob
from config.admin import prettify_json


@admin.register(NotificationChannel)
class NotificationChannelAdmin(admin.ModelAdmin):
    """Admin for NotificationChannel model. The webhook URL is validated by the driver."""

    list_display = [
        "name",
        "org_id",
        "driver",
        "is_active",
        "created_at",
        "updated_at",
    ]
    formfield_overrides = {db_models.JSONField: {"widget": JSONEditorWidget}}
    list_filter = ["driver", "is_active"]
    search_fields = ["name", "org_id", "description"]
    readonly_fields = ["created_at", "updated_at"]

    fieldsets = [
        (
            None,
            {
                "fields": ["org_id", "name", "driver", "is_active", "description"],
            },
        ),
        (
            "Configuration",
            {
                "fields": ["config"],
                "classes": ["collapse"],
            },
        ),
        (
            "Timestamps",
            {
                "fields": ["created_at", "updated_at"],
                "classes": ["collapse"],
            },
        ),
    ]


@admin.register(NotificationJob)
class NotificationJobAdmin(admin.ModelAdmin):
    """Jobs are read-only; the worker owns their state."""

    list_display = [
        "id",
        "org_id",
        "driver",
        "status",
        "attempts",
        "next_attempt_at",
        "short_error",
        "created_at",
    ]
    list_filter = ["status", "driver"]
    search_fields = ["org_id", "last_error"]
    date_hierarchy = "created_at"
    readonly_fields = [
        "org_id",
        "channel",
        "driver",
        "status",
        "attempts",
        "next_attempt_at",
        "last_error",
        "pretty_payload",
        "created_at",
        "updated_at",
    ]
    exclude = ["payload"]
    actions = ["retry_selected"]

    def has_add_permission(self, request):
        return False

    @admin.action(description="Retry selected failed jobs now")
    def retry_selected(self, request, queryset):
        updated = queryset.filter(status=JobStatus.FAILED).update(
            status=JobStatus.PENDING,
            attempts=0,
            next_attempt_at=timezone.now(),
        )
        self.message_user(request, f"{updated} job(s) queued for retry.")

    @admin.display(description="Last error")
    def short_error(self, obj):
        return (obj.last_error or "")[:80] or "-"

    @admin.display(description="Payload")
    def pretty_payload(self, obj):
        payload = dict(obj.payload or {})
        if payload.get("webhook_url"):
            payload["webhook_url"] = "***"
        return prettify_json(payload)

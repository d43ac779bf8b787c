"""Admin configuration for telemetry models."""

from django.contrib import admin

from apps.telemetry.models import Deployment, LogEntry


@admin.register(LogEntry)
class LogEntryAdmin(admin.ModelAdmin):
    list_display = ["ts", "level", "org_id", "service_id", "environment_id", "short_message"]
    list_filter = ["level"]
    search_fields = ["message", "org_id", "service_id"]
    date_hierarchy = "ts"

    @admin.display(description="Message")
    def short_message(self, obj):
        return obj.message[:80]


@admin.register(Deployment)
class DeploymentAdmin(admin.ModelAdmin):
    list_display = ["created_at", "status", "org_id", "service_id", "environment_id", "commit_sha"]
    list_filter = ["status"]
    search_fields = ["commit_sha", "ref", "org_id", "service_id"]
    date_hierarchy = "created_at"

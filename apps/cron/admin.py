"""Admin configuration for cron run records."""

from django.contrib import admin

from apps.cron.models import CronRun
from config.admin import prettify_json


@admin.register(CronRun)
class CronRunAdmin(admin.ModelAdmin):
    """Run records are written by the jobs; read-only here."""

    list_display = ["name", "status", "started_at", "finished_at", "duration"]
    list_filter = ["name", "status"]
    date_hierarchy = "started_at"
    readonly_fields = ["name", "status", "started_at", "finished_at", "pretty_meta"]
    exclude = ["meta"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    @admin.display(description="Summary")
    def pretty_meta(self, obj):
        return prettify_json(obj.meta)

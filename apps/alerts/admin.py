"""Admin configuration for alerts models."""

from django.contrib import admin, messages
from django.db import IntegrityError
from django.db import models as db_models
from django.utils.html import format_html
from django_json_widget.widgets import JSONEditorWidget
from django_object_actions import DjangoObjectActions
from django_object_actions import action as object_action

from apps.alerts.models import AlertFiring, AlertRule, Incident, IncidentEvent, IncidentStatus
from apps.alerts.services import IncidentManager
from config.admin import prettify_json

SEVERITY_COLORS = {
    "critical": "#dc3545",
    "high": "#fd7e14",
    "med": "#ffc107",
    "low": "#17a2b8",
}

STATUS_COLORS = {
    "open": "#dc3545",
    "investigating": "#ffc107",
    "resolved": "#28a745",
}


def _badge(color: str, label: str):
    return format_html(
        '<span style="background-color: {}; color: white; padding: 3px 8px; '
        'border-radius: 3px; font-size: 11px;">{}</span>',
        color,
        label.upper(),
    )


class IncidentEventInline(admin.TabularInline):
    """Read-only incident timeline."""

    model = IncidentEvent
    extra = 0
    readonly_fields = ["created_at", "event_type", "message", "actor", "pretty_metadata"]
    fields = readonly_fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    @admin.display(description="Metadata")
    def pretty_metadata(self, obj):
        return prettify_json(obj.metadata)


@admin.register(AlertRule)
class AlertRuleAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "rule_type",
        "severity_badge",
        "org_id",
        "service_id",
        "environment_id",
        "enabled",
        "cooldown_seconds",
    ]
    list_filter = ["rule_type", "severity", "enabled"]
    search_fields = ["name", "org_id", "service_id"]
    readonly_fields = ["created_at", "updated_at"]
    formfield_overrides = {db_models.JSONField: {"widget": JSONEditorWidget}}
    actions = ["enable_selected", "disable_selected"]

    @admin.action(description="Enable selected rules")
    def enable_selected(self, request, queryset):
        updated = queryset.update(enabled=True)
        self.message_user(request, f"{updated} rule(s) enabled.")

    @admin.action(description="Disable selected rules")
    def disable_selected(self, request, queryset):
        updated = queryset.update(enabled=False)
        self.message_user(request, f"{updated} rule(s) disabled.")

    @admin.display(description="Severity")
    def severity_badge(self, obj):
        return _badge(SEVERITY_COLORS.get(obj.severity, "#6c757d"), obj.severity)


@admin.register(AlertFiring)
class AlertFiringAdmin(admin.ModelAdmin):
    """Firing state is written by the evaluator only."""

    list_display = ["rule", "fingerprint", "fired_at", "last_notified_at"]
    search_fields = ["fingerprint", "rule__name"]
    readonly_fields = ["rule", "fingerprint", "fired_at", "last_notified_at"]
    list_select_related = ["rule"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Incident)
class IncidentAdmin(DjangoObjectActions, admin.ModelAdmin):
    """Admin for Incident model."""

    list_display = [
        "title",
        "severity_badge",
        "status_badge",
        "source",
        "org_id",
        "rule",
        "created_at",
        "resolved_at",
    ]
    list_filter = ["status", "severity", "source"]
    search_fields = ["title", "description", "fingerprint", "org_id"]
    readonly_fields = [
        "status",
        "source",
        "rule",
        "fingerprint",
        "created_at",
        "updated_at",
        "resolved_at",
    ]
    date_hierarchy = "created_at"
    inlines = [IncidentEventInline]
    list_select_related = ["rule"]
    actions = ["resolve_selected"]
    change_actions = ["investigate_incident", "resolve_incident", "reopen_incident"]

    fieldsets = [
        (
            None,
            {
                "fields": ["title", "severity", "status", "source"],
            },
        ),
        (
            "Scope",
            {
                "fields": ["org_id", "service_id", "environment_id"],
            },
        ),
        (
            "Details",
            {
                "fields": ["description", "rule", "fingerprint"],
            },
        ),
        (
            "Timestamps",
            {
                "fields": ["created_at", "updated_at", "resolved_at"],
            },
        ),
    ]

    def _actor(self, request) -> str:
        return request.user.get_username() if request.user.is_authenticated else ""

    @admin.action(description="Resolve selected incidents")
    def resolve_selected(self, request, queryset):
        count = 0
        for incident in queryset.filter(status__in=IncidentStatus.active()):
            IncidentManager.resolve(incident.pk, actor=self._actor(request))
            count += 1
        self.message_user(request, f"{count} incident(s) resolved.")

    @object_action(label="Investigate", description="Mark this incident as under investigation")
    def investigate_incident(self, request, obj):
        if obj.status == IncidentStatus.INVESTIGATING:
            self.message_user(request, "Already investigating.", level=messages.WARNING)
            return
        try:
            IncidentManager.investigate(obj.pk, actor=self._actor(request))
        except IntegrityError:
            self.message_user(
                request,
                "Another active incident already exists for this rule and fingerprint.",
                level=messages.ERROR,
            )
            return
        self.message_user(request, f"Incident '{obj.title}' is being investigated.")

    @object_action(label="Resolve", description="Mark this incident as resolved")
    def resolve_incident(self, request, obj):
        if obj.status == IncidentStatus.RESOLVED:
            self.message_user(request, "Already resolved.", level=messages.WARNING)
            return
        IncidentManager.resolve(obj.pk, actor=self._actor(request))
        self.message_user(request, f"Incident '{obj.title}' resolved.")

    @object_action(label="Reopen", description="Move a resolved incident back to open")
    def reopen_incident(self, request, obj):
        if obj.status != IncidentStatus.RESOLVED:
            self.message_user(request, f"Cannot reopen, status is '{obj.status}'.", level=messages.WARNING)
            return
        try:
            IncidentManager.reopen(obj.pk, actor=self._actor(request))
        except IntegrityError:
            self.message_user(
                request,
                "Another active incident already exists for this rule and fingerprint.",
                level=messages.ERROR,
            )
            return
        self.message_user(request, f"Incident '{obj.title}' reopened.")

    @admin.display(description="Severity")
    def severity_badge(self, obj):
        return _badge(SEVERITY_COLORS.get(obj.severity, "#6c757d"), obj.severity)

    @admin.display(description="Status")
    def status_badge(self, obj):
        return _badge(STATUS_COLORS.get(obj.status, "#6c757d"), obj.status)

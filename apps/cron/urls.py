"""URL configuration for the cron trigger endpoints."""

from django.urls import path

from apps.cron import views

app_name = "cron"

urlpatterns = [
    path("evaluate/", views.EvaluateRulesView.as_view(), name="evaluate"),
    path("notifications/", views.ProcessNotificationsView.as_view(), name="notifications"),
    path("cleanup/", views.CleanupLogsView.as_view(), name="cleanup"),
]

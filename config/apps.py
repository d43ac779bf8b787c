"""Admin app configuration pointing Django at the ops admin site."""

from django.contrib.admin.apps import AdminConfig


class OpsAdminConfig(AdminConfig):
    default_site = "config.admin.OpsAdminSite"

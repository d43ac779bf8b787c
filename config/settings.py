"""Django settings for the ops alerting project.

All values are read from the process environment. Local development can put
them in `.env` / `.env.dev` (see config/env.py).
"""

from __future__ import annotations

import os
from pathlib import Path

from celery.schedules import crontab

from config.env import load_env

BASE_DIR = Path(__file__).resolve().parent.parent

load_env(BASE_DIR)


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name, "").strip()
    return int(value) if value else default


def _env_list(name: str, default: str = "") -> list[str]:
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "django-insecure-dev-key-change-me")
DEBUG = _env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = _env_list("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver")

INSTALLED_APPS = [
    "config.apps.OpsAdminConfig",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "django_object_actions",
    "django_json_widget",
    "apps.telemetry",
    "apps.alerts",
    "apps.notify",
    "apps.cron",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"

# Database: sqlite by default, Postgres when DB_ENGINE=postgresql.
if os.environ.get("DB_ENGINE", "sqlite").lower() in {"postgres", "postgresql"}:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ.get("DB_NAME", "ops"),
            "USER": os.environ.get("DB_USER", "ops"),
            "PASSWORD": os.environ.get("DB_PASSWORD", ""),
            "HOST": os.environ.get("DB_HOST", "localhost"),
            "PORT": os.environ.get("DB_PORT", "5432"),
            "OPTIONS": {"connect_timeout": _env_int("DB_CONNECT_TIMEOUT", 5)},
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.environ.get("DB_NAME", str(BASE_DIR / "db.sqlite3")),
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# --- Logging ---
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        "apps": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}

# --- Cron trigger authentication ---
# Empty secrets never authorize a request.
CRON_SECRET = os.environ.get("CRON_SECRET", "")
INTERNAL_CRON_SECRET = os.environ.get("INTERNAL_CRON_SECRET", "")

# --- Alert rule evaluation ---
APP_BASE_URL = os.environ.get("APP_BASE_URL", "http://localhost:8000").rstrip("/")
ALERTS_DEFAULT_WINDOW_MINUTES = _env_int("ALERTS_DEFAULT_WINDOW_MINUTES", 5)
ALERTS_DEFAULT_THRESHOLD = _env_int("ALERTS_DEFAULT_THRESHOLD", 10)
ALERTS_DEFAULT_COOLDOWN_SECONDS = _env_int("ALERTS_DEFAULT_COOLDOWN_SECONDS", 300)

# --- Notification delivery ---
NOTIFY_BATCH_SIZE = _env_int("NOTIFY_BATCH_SIZE", 10)
NOTIFY_MAX_ATTEMPTS = _env_int("NOTIFY_MAX_ATTEMPTS", 5)
NOTIFY_BACKOFF_MINUTES = [int(v) for v in _env_list("NOTIFY_BACKOFF_MINUTES", "1,2,5,10,30")]
NOTIFY_WEBHOOK_TIMEOUT = float(os.environ.get("NOTIFY_WEBHOOK_TIMEOUT", "5"))

# --- Telemetry retention ---
LOG_RETENTION_DAYS = _env_int("LOG_RETENTION_DAYS", 7)

# --- Celery ---
CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", "redis://localhost:6379/0")
CELERY_TASK_ALWAYS_EAGER = _env_bool("CELERY_TASK_ALWAYS_EAGER", False)
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE

# Only used when a `celery beat` process is started; the HTTP trigger
# endpoints are the primary way an external scheduler runs the jobs.
CELERY_BEAT_SCHEDULE = {
    "evaluate-alert-rules": {
        "task": "apps.cron.tasks.evaluate_rules_task",
        "schedule": crontab(minute="*/5"),
    },
    "process-notification-jobs": {
        "task": "apps.cron.tasks.process_notifications_task",
        "schedule": crontab(minute="*/5"),
    },
    "cleanup-logs": {
        "task": "apps.cron.tasks.cleanup_logs_task",
        "schedule": crontab(minute=0, hour=3),
    },
}

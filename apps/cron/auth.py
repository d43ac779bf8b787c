"""Shared-secret authentication for the cron trigger endpoints.

A request is authorized by any one of:
- `Authorization: Bearer <CRON_SECRET>`
- `X-Internal-Cron-Secret: <INTERNAL_CRON_SECRET>`
- `?secret=<INTERNAL_CRON_SECRET>`

An empty configured secret never matches.
"""

import hmac

from django.conf import settings
from django.http import HttpRequest


def _matches(provided: str | None, expected: str | None) -> bool:
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def _bearer_token(request: HttpRequest) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def validate_cron_request(request: HttpRequest) -> bool:
    """Return True when the request carries a valid cron credential."""
    cron_secret = getattr(settings, "CRON_SECRET", "")
    internal_secret = getattr(settings, "INTERNAL_CRON_SECRET", "")

    if _matches(_bearer_token(request), cron_secret):
        return True
    if _matches(request.headers.get("X-Internal-Cron-Secret"), internal_secret):
        return True
    return _matches(request.GET.get("secret"), internal_secret)

"""Base driver and data structures for notification delivery.

Drivers shape an outbound message body for one platform and POST it to the
channel's webhook URL.

Public API:
- NotificationMessage
- BaseNotifyDriver
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

INCIDENT_CREATED = "incident.created"
INCIDENT_UPDATED = "incident.updated"


@dataclass
class NotificationMessage:
    """Rendered event fields carried in a job payload."""

    webhook_url: str
    event: str
    title: str
    status: str
    link: str = ""
    incident_id: int | None = None
    severity: str = ""
    service: str | None = None
    environment: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "NotificationMessage":
        payload = payload or {}
        return cls(
            webhook_url=payload.get("webhook_url") or "",
            event=payload.get("event", ""),
            title=payload.get("title", ""),
            status=payload.get("status", ""),
            link=payload.get("link", ""),
            incident_id=payload.get("incident_id"),
            severity=payload.get("severity", ""),
            service=payload.get("service"),
            environment=payload.get("environment"),
            raw=dict(payload),
        )

    @property
    def emoji(self) -> str:
        return "🚨" if self.event == INCIDENT_CREATED else "⚠️"


def redact_url(url: str) -> str:
    """Scheme and host only; webhook paths carry credentials."""
    parts = urlsplit(url or "")
    if not parts.scheme or not parts.netloc:
        return "<invalid url>"
    return f"{parts.scheme}://{parts.netloc}/..."


class BaseNotifyDriver(ABC):
    """Abstract base class for notification delivery drivers."""

    name: str = "base"

    def validate_config(self, config: dict[str, Any]) -> bool:
        """A config is valid when it carries an http(s) webhook_url."""
        url = (config or {}).get("webhook_url")
        if not isinstance(url, str):
            return False
        return url.startswith("http://") or url.startswith("https://")

    @abstractmethod
    def build_body(self, message: NotificationMessage) -> dict[str, Any]:
        """Return the JSON body posted to the webhook."""

    def send(self, message: NotificationMessage, timeout: float = 5.0) -> dict[str, Any]:
        """POST the message body to its webhook URL.

        Never raises for delivery problems.

        Returns:
            Dictionary with keys:
            - success: bool
            - error: str (if failed)
            - metadata: dict (status code on success)
        """
        if not message.webhook_url:
            return {"success": False, "error": "No webhook_url in payload"}

        service_name = self.name.capitalize()
        try:
            body = json.dumps(self.build_body(message), ensure_ascii=False).encode("utf-8")
            request = urllib.request.Request(
                message.webhook_url,
                data=body,
                headers={"Content-Type": "application/json"},
                method="POST",
            )

            with urllib.request.urlopen(request, timeout=timeout) as response:
                status_code = response.getcode()
                if not 200 <= status_code < 300:
                    reason = getattr(response, "reason", "") or ""
                    logger.warning(f"{service_name} webhook returned {status_code}")
                    return {"success": False, "error": f"Webhook failed: {status_code} {reason}".strip()}

                logger.info(
                    f"{service_name} notification sent to {redact_url(message.webhook_url)}: {message.title}"
                )
                return {"success": True, "metadata": {"status_code": status_code}}

        except urllib.error.HTTPError as e:
            return self._handle_http_error(e, service_name)
        except urllib.error.URLError as e:
            return self._handle_url_error(e, service_name)
        except Exception as e:
            return self._handle_exception(e, service_name, "send notification to")

    def _handle_http_error(self, e: urllib.error.HTTPError, service_name: str) -> dict[str, Any]:
        """Handle HTTP errors consistently across drivers."""
        logger.error(f"{service_name} HTTP error {e.code}: {e.reason}")
        return {"success": False, "error": f"Webhook failed: {e.code} {e.reason}"}

    def _handle_url_error(self, e: urllib.error.URLError, service_name: str) -> dict[str, Any]:
        """Handle URL errors consistently across drivers."""
        logger.error(f"{service_name} URL error: {e.reason}")
        return {"success": False, "error": f"Failed to connect to {service_name}: {e.reason}"}

    def _handle_exception(self, e: Exception, service_name: str, action: str) -> dict[str, Any]:
        """Handle general exceptions consistently across drivers."""
        logger.exception(f"Failed to {action} {service_name}: {e}")
        return {"success": False, "error": f"Failed to {action} {service_name}: {e}"}

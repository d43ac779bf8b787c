"""Fallback driver for job types without a dedicated message shape."""

import json
from typing import Any

from apps.notify.drivers.base import BaseNotifyDriver, NotificationMessage


class GenericNotifyDriver(BaseNotifyDriver):
    """Posts the raw payload as a JSON string in a `text` field."""

    name = "generic"

    def build_body(self, message: NotificationMessage) -> dict[str, Any]:
        fields = {key: value for key, value in message.raw.items() if key != "webhook_url"}
        return {"text": json.dumps(fields)}

"""Slack notification driver."""

from typing import Any

from apps.notify.drivers.base import BaseNotifyDriver, NotificationMessage


class SlackNotifyDriver(BaseNotifyDriver):
    """
    Driver for Slack incoming webhooks.

    Slack renders `text` as mrkdwn, so the title is bold and the incident
    link uses the `<url|label>` form.
    """

    name = "slack"

    def build_body(self, message: NotificationMessage) -> dict[str, Any]:
        return {
            "text": (
                f"{message.emoji} *{message.title}*\n"
                f"Status: {message.status}\n"
                f"<{message.link}|View Incident>"
            )
        }

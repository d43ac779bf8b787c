"""Discord notification driver."""

from typing import Any

from apps.notify.drivers.base import BaseNotifyDriver, NotificationMessage


class DiscordNotifyDriver(BaseNotifyDriver):
    """Driver for Discord channel webhooks (`content` message field)."""

    name = "discord"

    def build_body(self, message: NotificationMessage) -> dict[str, Any]:
        return {
            "content": (
                f"{message.emoji} **{message.title}**\n"
                f"Status: {message.status}\n"
                f"Link: {message.link}"
            )
        }

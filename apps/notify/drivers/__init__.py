"""
Notification drivers for delivering incident events to chat webhooks.
"""

from apps.notify.drivers.base import (
    INCIDENT_CREATED,
    INCIDENT_UPDATED,
    BaseNotifyDriver,
    NotificationMessage,
)
from apps.notify.drivers.discord import DiscordNotifyDriver
from apps.notify.drivers.generic import GenericNotifyDriver
from apps.notify.drivers.slack import SlackNotifyDriver

__all__ = [
    "INCIDENT_CREATED",
    "INCIDENT_UPDATED",
    "NotificationMessage",
    "BaseNotifyDriver",
    "DiscordNotifyDriver",
    "GenericNotifyDriver",
    "SlackNotifyDriver",
    "DRIVER_REGISTRY",
    "get_driver",
]

# Registry of available notification drivers
DRIVER_REGISTRY: dict[str, type[BaseNotifyDriver]] = {
    "discord": DiscordNotifyDriver,
    "slack": SlackNotifyDriver,
}


def get_driver(driver_name: str) -> BaseNotifyDriver:
    """
    Get a driver instance by name.

    Unknown names get the generic driver, which posts the raw payload.
    """
    driver_class = DRIVER_REGISTRY.get(driver_name, GenericNotifyDriver)
    return driver_class()

"""Notifier construction from configuration."""

from __future__ import annotations

import os

from logrecon.models.config import NotificationConfig
from logrecon.notifications.log import LogNotificationChannel
from logrecon.notifications.manager import (
    EventNotifier,
    NotificationChannel,
    NotificationDispatcher,
    NullNotifier,
    ResourceKind,
)
from logrecon.notifications.webhook import WebhookNotificationChannel
from logrecon.observability.logging import get_logger

__all__ = [
    "EventNotifier",
    "NotificationDispatcher",
    "NullNotifier",
    "ResourceKind",
    "build_notifier",
]

_log = get_logger("notifications")


def build_notifier(config: NotificationConfig) -> EventNotifier:
    """Return a dispatcher for the configured channels, or a NullNotifier if none are."""
    channels: list[NotificationChannel] = []
    if config.log_events:
        channels.append(LogNotificationChannel())

    if config.webhook_secret_ref:
        url = os.environ.get(config.webhook_secret_ref, "").strip()
        if url:
            channels.append(WebhookNotificationChannel(url=url))
        else:
            _log.warning("webhook_secret_unresolved", secret_ref=config.webhook_secret_ref)

    if not channels:
        return NullNotifier()
    return NotificationDispatcher(channels)

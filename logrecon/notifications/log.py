"""Notification channel that writes events to the structured log."""

from __future__ import annotations

from logrecon.notifications.manager import NotificationChannel, Outcome, ResourceEvent
from logrecon.observability.logging import get_logger

_log = get_logger("notifications.log")


class LogNotificationChannel(NotificationChannel):
    @property
    def channel_name(self) -> str:
        return "log"

    def send(self, event: ResourceEvent) -> bool:
        if event.outcome is Outcome.FAILURE:
            _log.warning("resource_event", kind=event.kind.value, outcome=event.outcome.value, **event.context)
        else:
            _log.info("resource_event", kind=event.kind.value, outcome=event.outcome.value, **event.context)
        return True

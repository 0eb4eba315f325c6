"""Event notification for reconciliation outcomes.

The reconciler reports each remote resource it creates or updates through
an :class:`EventNotifier`.  Notification is fire-and-forget: nothing a
notifier does may block the reconciliation or change its outcome.

:class:`NotificationDispatcher` is the production notifier.  It turns each
call into a :class:`ResourceEvent` and hands it to the configured channels
on a single background worker thread.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from logrecon.errors import ControlPlaneError, error_code, http_status
from logrecon.observability.logging import get_logger
from logrecon.observability.metrics import notifications_total

_log = get_logger("notifications.manager")


class ResourceKind(StrEnum):
    PROJECT = "project"
    LOGSTORE = "logstore"
    PRODUCT_LOGSTORE = "product_logstore"
    INDEX = "index"
    CONFIG = "config"
    MACHINE_GROUP = "machine_group"
    BINDING = "binding"


class Outcome(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class ResourceEvent:
    """One notification, as delivered to channels."""

    kind: ResourceKind
    outcome: Outcome
    message: str
    context: dict[str, str] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "outcome": self.outcome.value,
            "message": self.message,
            "context": dict(self.context),
            "occurred_at": self.occurred_at.isoformat(),
        }


def build_annotations(
    project: str,
    logstore: str = "",
    config_name: str = "",
    product_code: str = "",
) -> dict[str, str]:
    """Identify the resource a notification is about."""
    annotations = {"project": project, "logstore": logstore, "config_name": config_name}
    if product_code:
        annotations["product_code"] = product_code
    return annotations


def error_annotations(annotations: Mapping[str, str], error: BaseException) -> dict[str, str]:
    """Extend *annotations* with what is known about *error*."""
    result = dict(annotations)
    code = error_code(error)
    if code:
        result["error_code"] = code
        result["http_status"] = str(http_status(error))
    elif not isinstance(error, ControlPlaneError):
        result["error_code"] = type(error).__name__
    result["error_message"] = str(error)
    return result


# ---------------------------------------------------------------------------
# Notifier interface
# ---------------------------------------------------------------------------


class EventNotifier(ABC):
    """Receives success/failure notifications from the reconciler."""

    @abstractmethod
    def notify_success(self, kind: ResourceKind, context: Mapping[str, str]) -> None: ...

    @abstractmethod
    def notify_failure(self, kind: ResourceKind, context: Mapping[str, str], error: BaseException) -> None: ...


class NullNotifier(EventNotifier):
    """Notifier used when nothing is configured."""

    def notify_success(self, kind: ResourceKind, context: Mapping[str, str]) -> None:
        return None

    def notify_failure(self, kind: ResourceKind, context: Mapping[str, str], error: BaseException) -> None:
        return None


# ---------------------------------------------------------------------------
# Channels and dispatcher
# ---------------------------------------------------------------------------


class NotificationChannel(ABC):
    """A destination for :class:`ResourceEvent` objects."""

    @property
    @abstractmethod
    def channel_name(self) -> str: ...

    @abstractmethod
    def send(self, event: ResourceEvent) -> bool:
        """Deliver *event*; return True on success."""


class NotificationDispatcher(EventNotifier):
    """Fans events out to channels on a background worker thread.

    Channel failures are logged and counted, never raised.  Call
    :meth:`close` on shutdown to flush pending deliveries.
    """

    def __init__(self, channels: Sequence[NotificationChannel]) -> None:
        self._channels: list[NotificationChannel] = list(channels)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="logrecon-notify")
        self._closed = threading.Event()

    @property
    def channels(self) -> list[NotificationChannel]:
        return list(self._channels)

    def notify_success(self, kind: ResourceKind, context: Mapping[str, str]) -> None:
        self._submit(ResourceEvent(kind, Outcome.SUCCESS, f"{kind.value} reconciled", dict(context)))

    def notify_failure(self, kind: ResourceKind, context: Mapping[str, str], error: BaseException) -> None:
        self._submit(
            ResourceEvent(
                kind,
                Outcome.FAILURE,
                f"{kind.value} reconcile failed, error: {error}",
                error_annotations(context, error),
            )
        )

    def _submit(self, event: ResourceEvent) -> None:
        if not self._channels:
            return
        if self._closed.is_set():
            _log.debug("notification_dropped_after_close", kind=event.kind.value)
            return
        try:
            self._executor.submit(self._deliver, event)
        except RuntimeError:
            # Executor shut down between the check and the submit.
            _log.debug("notification_dropped_after_close", kind=event.kind.value)

    def _deliver(self, event: ResourceEvent) -> None:
        for channel in self._channels:
            try:
                ok = channel.send(event)
            except Exception as exc:
                ok = False
                _log.warning(
                    "notification_channel_error",
                    channel=channel.channel_name,
                    kind=event.kind.value,
                    error=str(exc),
                )
            notifications_total.labels(channel=channel.channel_name, success=str(ok).lower()).inc()

    def close(self, wait: bool = True) -> None:
        """Stop accepting events and optionally wait for pending deliveries."""
        self._closed.set()
        self._executor.shutdown(wait=wait)

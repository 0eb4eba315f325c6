"""Generic JSON webhook notification channel.

POSTs each :class:`ResourceEvent` as a flat JSON object to a configured
URL.  Runs on the dispatcher's worker thread, so a slow endpoint delays
later notifications but never a reconciliation.
"""

from __future__ import annotations

import httpx

from logrecon.notifications.manager import NotificationChannel, ResourceEvent
from logrecon.observability.logging import get_logger

_log = get_logger("notifications.webhook")


class WebhookNotificationChannel(NotificationChannel):
    """Delivers events to an HTTP endpoint.

    Args:
        url: Destination URL.
        headers: Extra request headers (e.g. ``Authorization``).
        timeout: HTTP request timeout in seconds. Defaults to 10.
    """

    def __init__(self, url: str, headers: dict[str, str] | None = None, timeout: float = 10.0) -> None:
        if not url:
            raise ValueError("Webhook url must not be empty")
        self._url = url
        self._headers = dict(headers or {})
        self._timeout = timeout

    @property
    def channel_name(self) -> str:
        return "webhook"

    def send(self, event: ResourceEvent) -> bool:
        """POST *event*; True on any 2xx response."""
        payload = self._build_payload(event)
        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.post(self._url, json=payload, headers=self._headers)
            if response.is_success:
                return True
            _log.warning(
                "webhook_unexpected_status",
                status_code=response.status_code,
                body=response.text[:200],
                kind=event.kind.value,
            )
            return False
        except httpx.TimeoutException:
            _log.warning("webhook_request_timeout", kind=event.kind.value)
            return False
        except httpx.HTTPError as exc:
            _log.warning("webhook_http_error", error=str(exc), kind=event.kind.value)
            return False

    def _build_payload(self, event: ResourceEvent) -> dict[str, object]:
        payload = event.to_dict()
        payload["source"] = "logrecon"
        return payload

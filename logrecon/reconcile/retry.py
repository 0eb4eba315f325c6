"""Bounded, fixed-interval retry policy shared by every remote call site.

Each call site supplies two optional predicates:

``satisfied``
    The error means the desired state already holds (typically an
    "already exists" conflict on create).  The call counts as a success
    and is not retried.
``terminal``
    The error is a meaningful answer rather than a failure (typically a
    "not found" on fetch).  It is re-raised immediately for the caller to
    interpret.

Any other exception is retried after a blocking sleep until
``max_attempts`` is reached; the last error is then wrapped in
:class:`~logrecon.errors.RemoteOperationError`.  There is no backoff and
no cancellation.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from typing import TypeVar

from logrecon.errors import RemoteOperationError
from logrecon.observability.logging import get_logger
from logrecon.observability.metrics import remote_operations_total, remote_retries_total

T = TypeVar("T")
ErrorPredicate = Callable[[BaseException], bool]

_log = get_logger("reconcile.retry")


class RetryPolicy:
    """Invoke a remote call up to ``max_attempts`` times, ``delay_seconds`` apart.

    Example::

        retry = RetryPolicy(max_attempts=3, delay_seconds=0.1)
        retry.run(
            "create_logstore",
            lambda: client.create_logstore(project, logstore, 180, 2, True, 32),
            satisfied=lambda exc: is_already_exists(exc, LOGSTORE_ALREADY_EXIST),
            resource={"project": project, "logstore": logstore},
        )
    """

    def __init__(
        self,
        max_attempts: int,
        delay_seconds: float,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        if delay_seconds < 0:
            raise ValueError(f"delay_seconds must be >= 0, got {delay_seconds}")
        self.max_attempts = max_attempts
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    def with_delay(self, delay_seconds: float) -> RetryPolicy:
        """Same attempt cap and sleep function, different interval."""
        return RetryPolicy(self.max_attempts, delay_seconds, self._sleep)

    def run(
        self,
        operation: str,
        call: Callable[[], T],
        *,
        satisfied: ErrorPredicate | None = None,
        terminal: ErrorPredicate | None = None,
        resource: Mapping[str, str] | None = None,
    ) -> T | None:
        """Run *call* under the policy.

        Returns the call's result, or ``None`` when an attempt failed with a
        *satisfied* error.

        Raises:
            Exception: the original error when *terminal* matches it.
            RemoteOperationError: when every attempt failed.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                result = call()
            except Exception as exc:
                if satisfied is not None and satisfied(exc):
                    remote_operations_total.labels(operation=operation, outcome="satisfied").inc()
                    _log.info("remote_call_already_satisfied", operation=operation, error=str(exc), **(resource or {}))
                    return None
                if terminal is not None and terminal(exc):
                    remote_operations_total.labels(operation=operation, outcome="terminal").inc()
                    raise
                _log.debug(
                    "remote_call_failed",
                    operation=operation,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=str(exc),
                )
                if attempt >= self.max_attempts:
                    remote_operations_total.labels(operation=operation, outcome="failed").inc()
                    _log.warning(
                        "remote_call_exhausted",
                        operation=operation,
                        attempts=attempt,
                        error=str(exc),
                        **(resource or {}),
                    )
                    raise RemoteOperationError(operation, attempt, exc, resource) from exc
                remote_retries_total.labels(operation=operation).inc()
                self._sleep(self.delay_seconds)
                continue
            remote_operations_total.labels(operation=operation, outcome="success").inc()
            return result

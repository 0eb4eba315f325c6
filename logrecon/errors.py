"""Error taxonomy for logrecon.

``ControlPlaneError``
    Raised by clients for classified remote failures. Carries the service
    error code and HTTP status.
``RemoteOperationError``
    A remote operation kept failing until the retry policy gave up.
``ReconcileError``
    A required reconciliation step failed. The pass is aborted and the
    caller receives every identifier it needs to log or alert.

Anything a client raises that is not a ControlPlaneError is treated as a
transient failure and retried.
"""

from __future__ import annotations

from collections.abc import Mapping

# ---------------------------------------------------------------------------
# Service error codes
# ---------------------------------------------------------------------------

PROJECT_ALREADY_EXIST = "ProjectAlreadyExist"
LOGSTORE_ALREADY_EXIST = "LogStoreAlreadyExist"
INDEX_ALREADY_EXIST = "IndexAlreadyExist"
CONFIG_ALREADY_EXIST = "ConfigAlreadyExist"
MACHINE_GROUP_ALREADY_EXIST = "MachineGroupAlreadyExist"
CONFIG_NOT_EXIST = "ConfigNotExist"

_HTTP_NOT_FOUND = 404


class LogReconError(Exception):
    """Base class for every error raised by logrecon."""


class ControlPlaneError(LogReconError):
    """A classified failure reported by the remote control plane.

    Args:
        code: Service error code, e.g. ``"ConfigNotExist"``.
        message: Human-readable message from the service.
        http_status: HTTP status of the failed response (0 when unknown).
        request_id: Request identifier for support tickets, if any.
    """

    def __init__(self, code: str, message: str = "", http_status: int = 0, request_id: str = "") -> None:
        super().__init__(f"{code}: {message}" if message else code)
        self.code = code
        self.message = message
        self.http_status = http_status
        self.request_id = request_id


class RemoteOperationError(LogReconError):
    """Raised when a remote operation fails on every allowed attempt."""

    def __init__(
        self,
        operation: str,
        attempts: int,
        cause: BaseException,
        resource: Mapping[str, str] | None = None,
    ) -> None:
        self.operation = operation
        self.attempts = attempts
        self.cause = cause
        self.resource: dict[str, str] = dict(resource or {})
        ids = ", ".join(f"{k}={v}" for k, v in self.resource.items())
        super().__init__(f"{operation} failed after {attempts} attempt(s) [{ids}]: {cause}")


class ReconcileError(LogReconError):
    """Fatal failure of one reconciliation step."""

    def __init__(
        self,
        step: str,
        cause: BaseException,
        *,
        project: str = "",
        logstore: str = "",
        config_name: str = "",
        machine_group: str = "",
    ) -> None:
        self.step = step
        self.cause = cause
        self.project = project
        self.logstore = logstore
        self.config_name = config_name
        self.machine_group = machine_group
        super().__init__(self._format())

    def _format(self) -> str:
        parts = [f"project={self.project}", f"logstore={self.logstore}", f"config={self.config_name}"]
        if self.machine_group:
            parts.append(f"machine_group={self.machine_group}")
        return f"{self.step} error, {', '.join(parts)}, error: {self.cause}"

    @property
    def root_cause(self) -> BaseException:
        """Innermost error, unwrapping RemoteOperationError."""
        if isinstance(self.cause, RemoteOperationError):
            return self.cause.cause
        return self.cause


# ---------------------------------------------------------------------------
# Classifiers
# ---------------------------------------------------------------------------


def _unwrap(exc: BaseException) -> BaseException:
    if isinstance(exc, RemoteOperationError):
        return exc.cause
    if isinstance(exc, ReconcileError):
        return exc.root_cause
    return exc


def error_code(exc: BaseException) -> str:
    """Return the service error code carried by *exc*, or ``""``."""
    inner = _unwrap(exc)
    return inner.code if isinstance(inner, ControlPlaneError) else ""


def http_status(exc: BaseException) -> int:
    """Return the HTTP status carried by *exc*, or 0."""
    inner = _unwrap(exc)
    return inner.http_status if isinstance(inner, ControlPlaneError) else 0


def is_already_exists(exc: BaseException, *codes: str) -> bool:
    """True when *exc* is a create conflict for one of *codes*."""
    return bool(codes) and error_code(exc) in codes


def is_not_found(exc: BaseException, code: str) -> bool:
    """True when *exc* carries the not-found service code *code*."""
    return error_code(exc) == code


def is_http_not_found(exc: BaseException) -> bool:
    return http_status(exc) == _HTTP_NOT_FOUND

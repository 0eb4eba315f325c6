"""Load :class:`ReconcilerConfig` from ``LOGRECON_*`` environment variables.

Integers are clamped to their documented bounds; values that cannot be
parsed at all raise ``ValueError`` so a misconfigured deployment fails at
startup rather than reconciling with surprising settings.
"""

from __future__ import annotations

import os

from logrecon.models.config import (
    CacheConfig,
    LogConfig,
    NotificationConfig,
    ReconcilerConfig,
    RetryConfig,
)

_PREFIX = "LOGRECON_"
_VALID_LOG_LEVELS = frozenset({"debug", "info", "warning", "error"})
_TRUTHY = ("1", "true", "yes", "on", "ok", "y", "t")
_REGION_SUFFIXES = ("-intranet", "-vpc", "-share")
_FALLBACK_REGION = "cn-hangzhou"


def _env(name: str) -> str:
    return os.environ.get(_PREFIX + name, "").strip()


def _env_str(name: str, default: str) -> str:
    return _env(name) or default


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name)
    if not raw:
        return default
    return raw.lower() in _TRUTHY


def _env_int(name: str, default: int, minimum: int, maximum: int) -> int:
    raw = _env(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"Invalid integer for {_PREFIX}{name}: {raw!r}") from None
    return max(minimum, min(maximum, value))


def guess_region(endpoint: str, default: str) -> str:
    """Derive the region from a service endpoint.

    ``cn-hangzhou-intranet.log.aliyuncs.com`` -> ``cn-hangzhou``.
    Returns *default* when the endpoint has no host label.
    """
    host = endpoint.removeprefix("http://").removeprefix("https://")
    dot = host.find(".")
    if dot <= 0:
        return default
    region = host[:dot]
    for suffix in _REGION_SUFFIXES:
        if region.endswith(suffix):
            return region[: -len(suffix)]
    return region


def load_config() -> ReconcilerConfig:
    """Build the reconciler configuration from the environment."""
    log_level = _env_str("LOG_LEVEL", "info").lower()
    if log_level not in _VALID_LOG_LEVELS:
        raise ValueError(f"Invalid log level: {log_level!r} (expected one of {sorted(_VALID_LOG_LEVELS)})")

    endpoint = _env_str("ENDPOINT", "")
    region = _env("DEFAULT_REGION") or guess_region(endpoint, _FALLBACK_REGION)

    return ReconcilerConfig(
        default_project=_env_str("DEFAULT_PROJECT", ""),
        endpoint=endpoint,
        default_region=region,
        default_machine_group=_env_str("DEFAULT_MACHINE_GROUP", "k8s-group"),
        logstore_settle_seconds=_env_int("LOGSTORE_SETTLE_MS", 1000, 0, 60_000) / 1000.0,
        retry=RetryConfig(
            max_attempts=_env_int("MAX_RETRY_ATTEMPTS", 3, 1, 20),
            delay_seconds=_env_int("RETRY_DELAY_MS", 100, 0, 60_000) / 1000.0,
            project_delay_seconds=_env_int("PROJECT_RETRY_DELAY_MS", 1000, 0, 60_000) / 1000.0,
        ),
        cache=CacheConfig(ttl_seconds=_env_int("CACHE_TTL_SECONDS", 600, 0, 86_400)),
        log=LogConfig(level=log_level),
        notifications=NotificationConfig(
            log_events=_env_bool("NOTIFY_LOG_EVENTS", True),
            webhook_secret_ref=_env_str("WEBHOOK_SECRET_REF", ""),
        ),
    )

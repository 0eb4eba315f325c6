"""Configuration data structures for logrecon.

Populated from ``LOGRECON_*`` environment variables by
:func:`logrecon.config.load_config` and passed explicitly into the
reconciler at construction time.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RetryConfig:
    """Fixed-interval retry policy for remote calls."""

    max_attempts: int = 3
    delay_seconds: float = 0.1
    project_delay_seconds: float = 1.0


@dataclass(frozen=True)
class CacheConfig:
    """Existence cache TTL; 0 disables caching."""

    ttl_seconds: int = 600


@dataclass(frozen=True)
class LogConfig:
    level: str = "info"


@dataclass(frozen=True)
class NotificationConfig:
    """Notification channels.

    ``webhook_secret_ref`` names the environment variable holding the
    webhook URL so the URL itself never appears in the config dump.
    """

    log_events: bool = True
    webhook_secret_ref: str = ""


@dataclass(frozen=True)
class ReconcilerConfig:
    default_project: str = ""
    endpoint: str = ""
    default_region: str = "cn-hangzhou"
    default_machine_group: str = "k8s-group"
    logstore_settle_seconds: float = 1.0
    retry: RetryConfig = field(default_factory=RetryConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    log: LogConfig = field(default_factory=LogConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)

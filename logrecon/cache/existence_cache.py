"""TTL-based positive cache of remote resources confirmed to exist.

An entry records the last time a resource was confirmed to exist (either
observed or created).  It is valid while ``now - confirmed_at < ttl``.
Expired entries read as misses and are overwritten by the next
:meth:`ExistenceCache.record`; nothing is evicted in the background, so the
map grows with the number of distinct resources ever seen.

Keys have the form ``"{project}@@{resource}"``.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from logrecon.observability.metrics import cache_entries, cache_lookups_total

_KEY_SEPARATOR = "@@"


def cache_key(project: str, resource: str) -> str:
    return f"{project}{_KEY_SEPARATOR}{resource}"


class ExistenceCache:
    """Thread-safe existence cache shared by concurrent reconciliations.

    Args:
        kind: Label used in metrics (``"logstore"``, ``"config"``).
        ttl_seconds: Validity window of an entry. ``<= 0`` disables the cache.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(self, kind: str, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._kind = kind
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._confirmed_at: dict[str, float] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def exists(self, project: str, resource: str) -> bool:
        """True only when a non-expired entry is present."""
        key = cache_key(project, resource)
        with self._lock:
            confirmed_at = self._confirmed_at.get(key)
        hit = confirmed_at is not None and self._clock() - confirmed_at < self._ttl
        cache_lookups_total.labels(kind=self._kind, result="hit" if hit else "miss").inc()
        return hit

    def record(self, project: str, resource: str) -> None:
        """Upsert the confirmation timestamp for *resource* to now."""
        now = self._clock()
        with self._lock:
            self._confirmed_at[cache_key(project, resource)] = now
            size = len(self._confirmed_at)
        cache_entries.labels(kind=self._kind).set(size)

    def invalidate(self, project: str, resource: str) -> None:
        """Drop the entry for a resource known to be gone."""
        with self._lock:
            self._confirmed_at.pop(cache_key(project, resource), None)
            size = len(self._confirmed_at)
        cache_entries.labels(kind=self._kind).set(size)

    def __len__(self) -> int:
        with self._lock:
            return len(self._confirmed_at)

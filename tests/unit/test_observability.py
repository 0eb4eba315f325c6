"""Unit tests for logrecon.observability."""

from __future__ import annotations

import structlog
from prometheus_client import REGISTRY

from logrecon.cache.existence_cache import ExistenceCache
from logrecon.observability.logging import get_logger, reconcile_context


class TestReconcileContext:
    def test_binds_identifiers_for_the_block_only(self) -> None:
        with reconcile_context("k8s-log-c0ffee", "app-stdout", "app-cfg"):
            bound = structlog.contextvars.get_contextvars()
            assert bound["project"] == "k8s-log-c0ffee"
            assert bound["logstore"] == "app-stdout"
            assert bound["config_name"] == "app-cfg"

        assert "project" not in structlog.contextvars.get_contextvars()

    def test_unbinds_on_error(self) -> None:
        try:
            with reconcile_context("p", "ls", "cfg"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        assert "logstore" not in structlog.contextvars.get_contextvars()


def test_get_logger_returns_usable_logger() -> None:
    log = get_logger("tests")
    log.debug("noop_event", key="value")


def _lookups(result: str) -> float:
    value = REGISTRY.get_sample_value("logrecon_cache_lookups_total", {"kind": "metrics-test", "result": result})
    return value or 0.0


def test_cache_lookups_are_counted(clock) -> None:
    cache = ExistenceCache("metrics-test", 600, clock)
    hits_before, misses_before = _lookups("hit"), _lookups("miss")

    cache.exists("p", "ls")
    cache.record("p", "ls")
    cache.exists("p", "ls")

    assert _lookups("miss") == misses_before + 1
    assert _lookups("hit") == hits_before + 1
    assert REGISTRY.get_sample_value("logrecon_cache_entries", {"kind": "metrics-test"}) == 1

"""Structured logging for logrecon.

Reconciliation passes bind their identifiers (project, logstore, config
name) into structlog's context variables so that every event emitted by
the provisioner, config reconciler and binder carries them without each
call site repeating the fields.
"""

from __future__ import annotations

import contextlib
import logging
import sys
from collections.abc import Iterator
from typing import cast

import structlog
from structlog.typing import FilteringBoundLogger, Processor


def setup_logging(level: str = "info", *, json_output: bool = True) -> None:
    """Configure structlog.

    JSON lines on stderr by default; ``json_output=False`` switches to the
    human-readable console renderer used by the CLI.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    renderer: Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str) -> FilteringBoundLogger:
    """Get a logger bound with a component name."""
    return cast(FilteringBoundLogger, structlog.get_logger(component=component))


@contextlib.contextmanager
def reconcile_context(project: str, logstore: str, config_name: str) -> Iterator[None]:
    """Bind reconciliation identifiers for the duration of one pass."""
    with structlog.contextvars.bound_contextvars(
        project=project,
        logstore=logstore,
        config_name=config_name,
    ):
        yield

"""Reconciliation engine.

Wires the existence caches, retry policy and the three pipeline stages
and runs one pass per :class:`DesiredConfigSpec`::

    project -> logstore -> index -> config -> machine group binding

Stages run strictly in order on the calling thread; the first fatal
failure aborts the pass with a :class:`ReconcileError`.  Passes for
different specs may run concurrently from separate threads; the caches
are the only state they share.
"""

from __future__ import annotations

import time
from collections.abc import Callable

from logrecon.cache.existence_cache import ExistenceCache
from logrecon.client.base import LogControlPlaneClient
from logrecon.errors import ReconcileError
from logrecon.models.config import ReconcilerConfig
from logrecon.models.spec import DesiredConfigSpec, ReconcileResult
from logrecon.notifications.manager import EventNotifier, NullNotifier
from logrecon.observability.logging import get_logger, reconcile_context
from logrecon.observability.metrics import reconcile_duration_seconds, reconciliations_total
from logrecon.reconcile.config_reconciler import ConfigReconciler
from logrecon.reconcile.machine_group import MachineGroupBinder
from logrecon.reconcile.provisioner import ResourceProvisioner
from logrecon.reconcile.retry import RetryPolicy


class Reconciler:
    """Converges remote log-collection resources onto declared specs.

    Args:
        client: Control-plane client.
        config: Retry, cache and default settings.
        notifier: Event sink; a :class:`NullNotifier` when omitted.
        sleep: Blocking sleep used between retries and after logstore
            creation. Injectable for tests.
        clock: Monotonic clock for the existence caches.

    Example::

        reconciler = Reconciler(client, load_config())
        reconciler.bootstrap()
        result = reconciler.reconcile(DesiredConfigSpec(logstore="app", config_name="app"))
    """

    def __init__(
        self,
        client: LogControlPlaneClient,
        config: ReconcilerConfig,
        notifier: EventNotifier | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._notifier = notifier or NullNotifier()
        self._log = get_logger("reconcile.engine")

        self.retry = RetryPolicy(config.retry.max_attempts, config.retry.delay_seconds, sleep)
        self.logstore_cache = ExistenceCache("logstore", config.cache.ttl_seconds, clock)
        self.config_cache = ExistenceCache("config", config.cache.ttl_seconds, clock)

        self.provisioner = ResourceProvisioner(
            client, self.retry, self.logstore_cache, self._notifier, config, sleep=sleep
        )
        self.configs = ConfigReconciler(client, self.retry, self.config_cache, self._notifier)
        self.binder = MachineGroupBinder(client, self.retry, self._notifier, config.default_machine_group)

    @property
    def config(self) -> ReconcilerConfig:
        return self._config

    def bootstrap(self) -> None:
        """Prepare the default project and default machine group.

        A default-project failure is only logged (specs may target other
        projects); a default machine group that cannot be created is fatal.

        Raises:
            ReconcileError: the default machine group could not be created.
        """
        project = self._config.default_project
        if not project:
            self._log.info("bootstrap_skipped", reason="no default project configured")
            return
        self._log.info("bootstrap_begin", project=project)
        try:
            self.provisioner.ensure_project(project)
        except ReconcileError as exc:
            self._log.warning("bootstrap_project_failed", project=project, error=str(exc))
        self.binder.ensure_group(project, self._config.default_machine_group)
        self._log.info("bootstrap_done", project=project)

    def reconcile(self, spec: DesiredConfigSpec) -> ReconcileResult:
        """Run one reconciliation pass for *spec*.

        Raises:
            ReconcileError: a required step failed after exhausting retries.
        """
        project = spec.resolve_project(self._config.default_project)
        started = time.perf_counter()
        with reconcile_context(project, spec.logstore, spec.config_name):
            self._log.info("reconcile_begin")
            try:
                self.provisioner.ensure_logstore(spec, project)
                outcome = self.configs.reconcile(spec, project)
                bound = self.binder.ensure_bound(spec, project, config_existed=outcome.existed)
            except ReconcileError as exc:
                reconciliations_total.labels(outcome="failed").inc()
                self._log.error("reconcile_failed", step=exc.step, error=str(exc))
                raise
            duration = time.perf_counter() - started
            reconciliations_total.labels(outcome="success").inc()
            reconcile_duration_seconds.observe(duration)
            self._log.info("reconcile_done", action=outcome.action.value, bound=bound, duration_s=round(duration, 3))

        return ReconcileResult(
            project=project,
            logstore=spec.logstore,
            config_name=spec.config_name,
            machine_group=spec.target_machine_group(self._config.default_machine_group),
            config_action=outcome.action,
            bound=bound,
            duration_seconds=duration,
        )

    def delete_config(self, project: str, config_name: str) -> None:
        """Delete a config and forget it in the config cache.

        Raises:
            ReconcileError: deletion failed after exhausting retries.
        """
        self.configs.delete(project or self._config.default_project, config_name)

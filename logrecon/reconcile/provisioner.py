"""Ensure the project, logstore and default index behind a config exist.

Per logstore the steps run strictly in order:

1. Existence cache short-circuit (covers managed-product logstores too).
2. Managed-product path (declared ``product_code`` or an audit logstore
   name): one product-specific create call, then stop.
3. Project create-if-absent when the target is not the default project.
4. Logstore existence check.
5. Logstore create with clamped shard count / TTL, settle delay, then the
   default index (index failures are reported but never fatal).
"""

from __future__ import annotations

import time
from collections.abc import Callable

from logrecon.cache.existence_cache import ExistenceCache
from logrecon.client.base import LogControlPlaneClient
from logrecon.errors import (
    INDEX_ALREADY_EXIST,
    LOGSTORE_ALREADY_EXIST,
    PROJECT_ALREADY_EXIST,
    ReconcileError,
    RemoteOperationError,
    is_already_exists,
)
from logrecon.models.config import ReconcilerConfig
from logrecon.models.spec import DesiredConfigSpec
from logrecon.notifications.manager import EventNotifier, ResourceKind, build_annotations
from logrecon.observability.logging import get_logger
from logrecon.reconcile.index import default_index
from logrecon.reconcile.retry import RetryPolicy

DEFAULT_SHARD_COUNT = 2
MAX_INITIAL_SHARD_COUNT = 10
DEFAULT_TTL_DAYS = 180
MAX_SPLIT_SHARD = 32

# Audit logstores are named "audit-" followed by a 33-character cluster id.
AUDIT_LOGSTORE_PREFIX = "audit-"
AUDIT_LOGSTORE_LENGTH = 39
AUDIT_PRODUCT_CODE = "k8s-audit"
DEFAULT_PRODUCT_LANG = "cn"

PROJECT_DESCRIPTION = "k8s log project, created by logrecon"


def clamp_shard_count(shard_count: int | None) -> int:
    """Missing or non-positive -> 2; otherwise capped at 10."""
    if shard_count is None or shard_count <= 0:
        return DEFAULT_SHARD_COUNT
    return min(shard_count, MAX_INITIAL_SHARD_COUNT)


def effective_ttl_days(life_cycle_days: int | None) -> int:
    if life_cycle_days is None or life_cycle_days <= 0:
        return DEFAULT_TTL_DAYS
    return life_cycle_days


def is_audit_logstore(logstore: str) -> bool:
    return logstore.startswith(AUDIT_LOGSTORE_PREFIX) and len(logstore) == AUDIT_LOGSTORE_LENGTH


class ResourceProvisioner:
    """Creates projects, logstores and indexes on demand.

    Args:
        client: Control-plane client.
        retry: Base retry policy (project calls use the configured
            project delay instead of its interval).
        logstore_cache: Existence cache for logstores.
        notifier: Receives success/failure events.
        config: Reconciler configuration.
        sleep: Blocking sleep used for the post-create settle delay.
    """

    def __init__(
        self,
        client: LogControlPlaneClient,
        retry: RetryPolicy,
        logstore_cache: ExistenceCache,
        notifier: EventNotifier,
        config: ReconcilerConfig,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._retry = retry
        self._project_retry = retry.with_delay(config.retry.project_delay_seconds)
        self._cache = logstore_cache
        self._notifier = notifier
        self._config = config
        self._sleep = sleep
        self._log = get_logger("reconcile.provisioner")

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def ensure_project(self, project: str, spec: DesiredConfigSpec | None = None) -> None:
        """Create *project* unless it already exists.

        Raises:
            ReconcileError: creation failed on every attempt.
        """
        logstore = spec.logstore if spec is not None else ""
        config_name = spec.config_name if spec is not None else ""
        resource = {"project": project}

        try:
            exists = self._project_retry.run(
                "check_project_exists",
                lambda: self._client.check_project_exists(project),
                resource=resource,
            )
        except RemoteOperationError as exc:
            self._log.warning("project_check_failed", project=project, error=str(exc))
            exists = False
        if exists:
            return

        annotations = build_annotations(project, logstore, config_name)
        try:
            self._project_retry.run(
                "create_project",
                lambda: self._client.create_project(project, PROJECT_DESCRIPTION),
                satisfied=lambda exc: is_already_exists(exc, PROJECT_ALREADY_EXIST),
                resource=resource,
            )
        except RemoteOperationError as exc:
            self._log.warning("create_project_failed", project=project, error=str(exc))
            self._notifier.notify_failure(ResourceKind.PROJECT, annotations, exc)
            raise ReconcileError(
                "create_project", exc, project=project, logstore=logstore, config_name=config_name
            ) from exc
        self._log.info("project_created", project=project)
        self._notifier.notify_success(ResourceKind.PROJECT, annotations)

    # ------------------------------------------------------------------
    # Logstores
    # ------------------------------------------------------------------

    def ensure_logstore(self, spec: DesiredConfigSpec, project: str) -> None:
        """Make sure the logstore of *spec* exists in *project*.

        Raises:
            ReconcileError: project, logstore or product-logstore creation failed.
        """
        logstore = spec.logstore

        if self._cache.exists(project, logstore):
            self._log.debug("logstore_cache_hit", project=project, logstore=logstore)
            return

        if spec.product_code:
            self._provision_product_logstore(spec, project, spec.product_code, spec.product_lang or DEFAULT_PRODUCT_LANG)
            return
        if is_audit_logstore(logstore):
            self._provision_product_logstore(spec, project, AUDIT_PRODUCT_CODE, DEFAULT_PRODUCT_LANG)
            return

        if project != self._config.default_project:
            self.ensure_project(project, spec)

        resource = {"project": project, "logstore": logstore}
        try:
            exists = self._retry.run(
                "check_logstore_exists",
                lambda: self._client.check_logstore_exists(project, logstore),
                resource=resource,
            )
        except RemoteOperationError as exc:
            self._log.warning("logstore_check_failed", project=project, logstore=logstore, error=str(exc))
            exists = False
        if exists:
            self._log.info("logstore_already_exists", project=project, logstore=logstore)
            self._cache.record(project, logstore)
            return

        self._create_logstore(spec, project)

    def _create_logstore(self, spec: DesiredConfigSpec, project: str) -> None:
        logstore = spec.logstore
        ttl_days = effective_ttl_days(spec.life_cycle_days)
        shard_count = clamp_shard_count(spec.shard_count)
        annotations = build_annotations(project, logstore, spec.config_name)

        try:
            self._retry.run(
                "create_logstore",
                lambda: self._client.create_logstore(
                    project,
                    logstore,
                    ttl_days=ttl_days,
                    shard_count=shard_count,
                    auto_split=True,
                    max_split_shard=MAX_SPLIT_SHARD,
                ),
                satisfied=lambda exc: is_already_exists(exc, LOGSTORE_ALREADY_EXIST),
                resource={"project": project, "logstore": logstore},
            )
        except RemoteOperationError as exc:
            self._notifier.notify_failure(ResourceKind.LOGSTORE, annotations, exc)
            raise ReconcileError(
                "create_logstore", exc, project=project, logstore=logstore, config_name=spec.config_name
            ) from exc

        self._cache.record(project, logstore)
        self._log.info("logstore_created", project=project, logstore=logstore, ttl_days=ttl_days, shards=shard_count)
        self._notifier.notify_success(ResourceKind.LOGSTORE, annotations)

        # Freshly created logstores reject index calls for a short while.
        self._sleep(self._config.logstore_settle_seconds)
        self._create_default_index(project, logstore, spec.config_name)

    def _create_default_index(self, project: str, logstore: str, config_name: str) -> None:
        annotations = build_annotations(project, logstore, config_name)
        index = default_index()
        try:
            self._retry.run(
                "create_index",
                lambda: self._client.create_index(project, logstore, index),
                satisfied=lambda exc: is_already_exists(exc, INDEX_ALREADY_EXIST),
                resource={"project": project, "logstore": logstore},
            )
        except RemoteOperationError as exc:
            self._log.warning("create_index_failed", project=project, logstore=logstore, error=str(exc))
            self._notifier.notify_failure(ResourceKind.INDEX, annotations, exc)
            return
        self._log.info("index_created", project=project, logstore=logstore)
        self._notifier.notify_success(ResourceKind.INDEX, annotations)

    # ------------------------------------------------------------------
    # Managed products
    # ------------------------------------------------------------------

    def _provision_product_logstore(self, spec: DesiredConfigSpec, project: str, product: str, lang: str) -> None:
        logstore = spec.logstore
        region = self._config.default_region
        annotations = build_annotations(project, logstore, spec.config_name, product_code=product)
        self._log.info(
            "creating_product_logstore",
            project=project,
            logstore=logstore,
            product=product,
            lang=lang,
            region=region,
        )
        try:
            self._retry.run(
                "create_product_logstore",
                lambda: self._client.create_product_logstore(region, project, logstore, product, lang),
                satisfied=lambda exc: is_already_exists(exc, LOGSTORE_ALREADY_EXIST),
                resource={"project": project, "logstore": logstore, "product": product},
            )
        except RemoteOperationError as exc:
            self._log.warning("create_product_logstore_failed", project=project, logstore=logstore, error=str(exc))
            self._notifier.notify_failure(ResourceKind.PRODUCT_LOGSTORE, annotations, exc)
            raise ReconcileError(
                "create_product_logstore", exc, project=project, logstore=logstore, config_name=spec.config_name
            ) from exc
        self._cache.record(project, logstore)
        self._notifier.notify_success(ResourceKind.PRODUCT_LOGSTORE, annotations)

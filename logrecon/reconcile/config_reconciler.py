"""Converge a named collection config onto its declared spec.

Decision table for an existing remote config:

=================  ===========================  =============================
mode               drift                        remote write
=================  ===========================  =============================
simple             none                         none
simple             file fields (file -> file)   patch four fields, one update
simple             input type changed           full overwrite
full               none in declared keys        none
full               type / output / declared key full overwrite
=================  ===========================  =============================

A fetch failure other than "not found" is treated as absent: the create
that follows is safe because ``ConfigAlreadyExist`` counts as success.
"""

from __future__ import annotations

from logrecon.cache.existence_cache import ExistenceCache
from logrecon.client.base import LogControlPlaneClient
from logrecon.errors import (
    CONFIG_ALREADY_EXIST,
    CONFIG_NOT_EXIST,
    ControlPlaneError,
    ReconcileError,
    RemoteOperationError,
    is_already_exists,
    is_http_not_found,
    is_not_found,
)
from logrecon.models.spec import (
    INPUT_TYPE_FILE,
    OUTPUT_TYPE_LOG_SERVICE,
    CollectionConfig,
    ConfigAction,
    ConfigOutcome,
    DesiredConfigSpec,
    RemoteConfigSnapshot,
)
from logrecon.notifications.manager import EventNotifier, ResourceKind, build_annotations
from logrecon.observability.logging import get_logger
from logrecon.observability.metrics import config_actions_total, config_fetch_uncertain_total
from logrecon.reconcile.input_detail import (
    FILE_PATTERN,
    LOG_PATH,
    as_string,
    declared_fields_drifted,
    file_config_changed,
    patch_file_fields,
    with_required_fields,
)
from logrecon.reconcile.retry import RetryPolicy


def build_collection_config(spec: DesiredConfigSpec, project: str) -> CollectionConfig:
    """Full config object for *spec*, bound to ``project``/``spec.logstore``."""
    return CollectionConfig(
        name=spec.config_name,
        input_type=spec.effective_input_type,
        input_detail=with_required_fields(spec.input_detail),
        output_project=project,
        output_logstore=spec.logstore,
        output_type=OUTPUT_TYPE_LOG_SERVICE,
    )


def _config_already_exists(exc: BaseException) -> bool:
    return is_already_exists(exc, CONFIG_ALREADY_EXIST)


def _config_not_found(exc: BaseException) -> bool:
    return is_not_found(exc, CONFIG_NOT_EXIST)


class ConfigReconciler:
    """Creates, patches or overwrites remote collection configs."""

    def __init__(
        self,
        client: LogControlPlaneClient,
        retry: RetryPolicy,
        config_cache: ExistenceCache,
        notifier: EventNotifier,
    ) -> None:
        self._client = client
        self._retry = retry
        self._cache = config_cache
        self._notifier = notifier
        self._log = get_logger("reconcile.config")

    def reconcile(self, spec: DesiredConfigSpec, project: str) -> ConfigOutcome:
        """Ensure the remote config named ``spec.config_name`` reflects *spec*.

        Raises:
            ReconcileError: create or update failed on every attempt.
        """
        desired = build_collection_config(spec, project)
        remote = self._fetch(project, spec)

        if remote is None:
            self._write(spec, project, desired, create=True)
            action = ConfigAction.CREATED
        elif spec.simple_config_mode:
            action = self._reconcile_simple(spec, project, desired, remote)
        else:
            action = self._reconcile_full(spec, project, desired, remote)

        self._cache.record(project, spec.config_name)
        config_actions_total.labels(action=action.value).inc()
        self._log.info("config_reconciled", config_name=spec.config_name, action=action.value)
        return ConfigOutcome(existed=remote is not None, action=action)

    def delete(self, project: str, config_name: str) -> None:
        """Delete a config; an already missing config counts as deleted.

        Raises:
            ReconcileError: deletion failed on every attempt.
        """
        try:
            self._retry.run(
                "delete_config",
                lambda: self._client.delete_config(project, config_name),
                satisfied=is_http_not_found,
                resource={"project": project, "config_name": config_name},
            )
        except RemoteOperationError as exc:
            raise ReconcileError("delete_config", exc, project=project, config_name=config_name) from exc
        self._cache.invalidate(project, config_name)
        self._log.info("config_deleted", project=project, config_name=config_name)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fetch(self, project: str, spec: DesiredConfigSpec) -> RemoteConfigSnapshot | None:
        try:
            return self._retry.run(
                "get_config",
                lambda: self._client.get_config(project, spec.config_name),
                terminal=_config_not_found,
                resource={"project": project, "config_name": spec.config_name},
            )
        except RemoteOperationError as exc:
            config_fetch_uncertain_total.inc()
            self._log.warning(
                "config_fetch_failed_assuming_absent",
                project=project,
                config_name=spec.config_name,
                error=str(exc),
            )
            return None
        except ControlPlaneError as exc:
            if not _config_not_found(exc):
                raise
            self._log.debug("config_not_found", project=project, config_name=spec.config_name)
            return None

    def _reconcile_simple(
        self,
        spec: DesiredConfigSpec,
        project: str,
        desired: CollectionConfig,
        remote: RemoteConfigSnapshot,
    ) -> ConfigAction:
        declared = spec.input_detail
        if desired.input_type != remote.input_type:
            self._log.info(
                "config_input_type_changed",
                config_name=spec.config_name,
                remote_type=remote.input_type,
                desired_type=desired.input_type,
            )
            self._write(spec, project, desired, create=False)
            return ConfigAction.REPLACED

        if (
            desired.input_type == INPUT_TYPE_FILE
            and as_string(declared.get(LOG_PATH))
            and as_string(declared.get(FILE_PATTERN))
            and file_config_changed(declared, remote.input_detail)
        ):
            patched = remote.clone()
            patched.input_detail = patch_file_fields(remote.input_detail, declared)
            self._log.info(
                "file_config_changed",
                config_name=spec.config_name,
                old=remote.input_detail,
                new=patched.input_detail,
            )
            self._write(spec, project, patched, create=False)
            return ConfigAction.PATCHED

        self._log.debug("config_unchanged", config_name=spec.config_name)
        return ConfigAction.UNCHANGED

    def _reconcile_full(
        self,
        spec: DesiredConfigSpec,
        project: str,
        desired: CollectionConfig,
        remote: RemoteConfigSnapshot,
    ) -> ConfigAction:
        drifted = declared_fields_drifted(desired.input_detail, remote.input_detail)
        output_changed = (remote.output_project, remote.output_logstore) != (project, spec.logstore)
        if desired.input_type == remote.input_type and not output_changed and not drifted:
            return ConfigAction.UNCHANGED

        self._log.info(
            "config_drift_detected",
            config_name=spec.config_name,
            type_changed=desired.input_type != remote.input_type,
            output_changed=output_changed,
            fields=drifted,
        )
        self._write(spec, project, desired, create=False)
        return ConfigAction.REPLACED

    def _write(self, spec: DesiredConfigSpec, project: str, config: CollectionConfig, *, create: bool) -> None:
        operation = "create_config" if create else "update_config"
        push = self._client.create_config if create else self._client.update_config
        annotations = build_annotations(project, spec.logstore, spec.config_name)
        try:
            self._retry.run(
                operation,
                lambda: push(project, config),
                satisfied=_config_already_exists if create else None,
                resource={"project": project, "config_name": spec.config_name},
            )
        except RemoteOperationError as exc:
            self._notifier.notify_failure(ResourceKind.CONFIG, annotations, exc)
            raise ReconcileError(
                operation, exc, project=project, logstore=spec.logstore, config_name=spec.config_name
            ) from exc
        self._notifier.notify_success(ResourceKind.CONFIG, annotations)

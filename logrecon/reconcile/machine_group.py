"""Ensure a machine group exists and the config is applied to it."""

from __future__ import annotations

from logrecon.client.base import LogControlPlaneClient
from logrecon.errors import MACHINE_GROUP_ALREADY_EXIST, ReconcileError, RemoteOperationError, is_already_exists
from logrecon.models.spec import DesiredConfigSpec, MachineGroup
from logrecon.notifications.manager import EventNotifier, ResourceKind, build_annotations
from logrecon.observability.logging import get_logger
from logrecon.reconcile.retry import RetryPolicy


class MachineGroupBinder:
    """Creates machine groups and binds configs to them.

    Args:
        client: Control-plane client.
        retry: Retry policy for every remote call.
        notifier: Receives success/failure events.
        default_group: Binding target for specs that declare no group.
    """

    def __init__(
        self,
        client: LogControlPlaneClient,
        retry: RetryPolicy,
        notifier: EventNotifier,
        default_group: str,
    ) -> None:
        self._client = client
        self._retry = retry
        self._notifier = notifier
        self._default_group = default_group
        self._log = get_logger("reconcile.machine_group")

    @property
    def default_group(self) -> str:
        return self._default_group

    def ensure_group(self, project: str, group: str) -> None:
        """Create *group* in *project* unless it already exists.

        Raises:
            ReconcileError: creation failed on every attempt.
        """
        resource = {"project": project, "machine_group": group}
        try:
            exists = self._retry.run(
                "check_machine_group_exists",
                lambda: self._client.check_machine_group_exists(project, group),
                resource=resource,
            )
        except RemoteOperationError as exc:
            self._log.warning("machine_group_check_failed", project=project, machine_group=group, error=str(exc))
            exists = False
        if exists:
            return

        annotations = build_annotations(project)
        annotations["machine_group"] = group
        try:
            self._retry.run(
                "create_machine_group",
                lambda: self._client.create_machine_group(project, MachineGroup.user_defined(group)),
                satisfied=lambda exc: is_already_exists(exc, MACHINE_GROUP_ALREADY_EXIST),
                resource=resource,
            )
        except RemoteOperationError as exc:
            self._notifier.notify_failure(ResourceKind.MACHINE_GROUP, annotations, exc)
            raise ReconcileError("create_machine_group", exc, project=project, machine_group=group) from exc
        self._log.info("machine_group_created", project=project, machine_group=group)
        self._notifier.notify_success(ResourceKind.MACHINE_GROUP, annotations)

    def ensure_bound(self, spec: DesiredConfigSpec, project: str, config_existed: bool) -> bool:
        """Apply the config to its target group; return True if a bind call was issued.

        Newly created configs are never pre-bound, so the membership lookup
        only happens for configs that already existed.

        Raises:
            ReconcileError: group creation, membership lookup or binding failed.
        """
        group = spec.target_machine_group(self._default_group)
        try:
            self.ensure_group(project, group)
        except ReconcileError as exc:
            raise ReconcileError(
                exc.step,
                exc.cause,
                project=project,
                logstore=spec.logstore,
                config_name=spec.config_name,
                machine_group=group,
            ) from exc.cause

        resource = {"project": project, "config_name": spec.config_name, "machine_group": group}
        if config_existed:
            try:
                bound_groups = self._retry.run(
                    "get_bound_machine_groups",
                    lambda: self._client.get_bound_machine_groups(project, spec.config_name),
                    resource=resource,
                )
            except RemoteOperationError as exc:
                raise ReconcileError(
                    "get_bound_machine_groups",
                    exc,
                    project=project,
                    logstore=spec.logstore,
                    config_name=spec.config_name,
                    machine_group=group,
                ) from exc
            if group in (bound_groups or []):
                self._log.debug("config_already_bound", config_name=spec.config_name, machine_group=group)
                return False

        annotations = build_annotations(project, spec.logstore, spec.config_name)
        annotations["machine_group"] = group
        try:
            self._retry.run(
                "bind_config_to_machine_group",
                lambda: self._client.bind_config_to_machine_group(project, spec.config_name, group),
                resource=resource,
            )
        except RemoteOperationError as exc:
            self._notifier.notify_failure(ResourceKind.BINDING, annotations, exc)
            raise ReconcileError(
                "bind_config_to_machine_group",
                exc,
                project=project,
                logstore=spec.logstore,
                config_name=spec.config_name,
                machine_group=group,
            ) from exc
        self._log.info("config_bound", config_name=spec.config_name, machine_group=group)
        self._notifier.notify_success(ResourceKind.BINDING, annotations)
        return True

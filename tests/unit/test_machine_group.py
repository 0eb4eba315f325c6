"""Unit tests for logrecon.reconcile.machine_group.MachineGroupBinder."""

from __future__ import annotations

import pytest

from logrecon.errors import ControlPlaneError, ReconcileError
from logrecon.models.spec import MACHINE_ID_TYPE_USER_DEFINED, MachineGroup
from logrecon.notifications.manager import ResourceKind

from .conftest import DEFAULT_PROJECT


class TestEnsureGroup:
    def test_creates_user_defined_group(self, reconciler, fake_client, notifier) -> None:
        reconciler.binder.ensure_group(DEFAULT_PROJECT, "k8s-group-web")

        group = fake_client.machine_groups[(DEFAULT_PROJECT, "k8s-group-web")]
        assert group == MachineGroup("k8s-group-web", MACHINE_ID_TYPE_USER_DEFINED, ("k8s-group-web",))
        assert notifier.success_kinds() == [ResourceKind.MACHINE_GROUP]

    def test_existing_group_is_noop(self, reconciler, fake_client) -> None:
        fake_client.machine_groups[(DEFAULT_PROJECT, "k8s-group-web")] = MachineGroup.user_defined("k8s-group-web")

        reconciler.binder.ensure_group(DEFAULT_PROJECT, "k8s-group-web")

        assert fake_client.count("create_machine_group") == 0

    def test_already_exists_race_is_success(self, reconciler, fake_client, notifier) -> None:
        fake_client.failures["create_machine_group"].append(
            ControlPlaneError("MachineGroupAlreadyExist", "exists", 400)
        )

        reconciler.binder.ensure_group(DEFAULT_PROJECT, "k8s-group-web")

        assert fake_client.count("create_machine_group") == 1
        assert notifier.failure_kinds() == []

    def test_create_failure_is_fatal(self, reconciler, fake_client, notifier) -> None:
        fake_client.always_fail["create_machine_group"] = ControlPlaneError("QuotaExceed", "too many", 400)

        with pytest.raises(ReconcileError) as exc_info:
            reconciler.binder.ensure_group(DEFAULT_PROJECT, "k8s-group-web")

        assert exc_info.value.step == "create_machine_group"
        assert exc_info.value.machine_group == "k8s-group-web"
        assert notifier.failure_kinds() == [ResourceKind.MACHINE_GROUP]


class TestEnsureBound:
    def test_new_config_is_bound_to_default_group(self, reconciler, fake_client, file_spec, notifier) -> None:
        bound = reconciler.binder.ensure_bound(file_spec, DEFAULT_PROJECT, config_existed=False)

        assert bound is True
        assert fake_client.bindings[(DEFAULT_PROJECT, "app-stdout")] == ["k8s-group-default"]
        # new configs skip the membership lookup
        assert fake_client.count("get_bound_machine_groups") == 0
        assert notifier.success_kinds() == [ResourceKind.MACHINE_GROUP, ResourceKind.BINDING]

    def test_declared_group_wins(self, reconciler, fake_client, file_spec) -> None:
        spec = file_spec.model_copy(update={"machine_groups": ["k8s-group-web", "k8s-group-api"]})

        reconciler.binder.ensure_bound(spec, DEFAULT_PROJECT, config_existed=False)

        assert fake_client.bindings[(DEFAULT_PROJECT, "app-stdout")] == ["k8s-group-web"]
        assert (DEFAULT_PROJECT, "k8s-group-api") not in fake_client.machine_groups

    def test_already_bound_skips_bind(self, reconciler, fake_client, file_spec) -> None:
        fake_client.machine_groups[(DEFAULT_PROJECT, "k8s-group-default")] = MachineGroup.user_defined(
            "k8s-group-default"
        )
        fake_client.bindings[(DEFAULT_PROJECT, "app-stdout")].append("k8s-group-default")

        bound = reconciler.binder.ensure_bound(file_spec, DEFAULT_PROJECT, config_existed=True)

        assert bound is False
        assert fake_client.mutating_calls() == []

    def test_existing_config_bound_elsewhere_is_bound(self, reconciler, fake_client, file_spec) -> None:
        fake_client.bindings[(DEFAULT_PROJECT, "app-stdout")].append("legacy-group")

        bound = reconciler.binder.ensure_bound(file_spec, DEFAULT_PROJECT, config_existed=True)

        assert bound is True
        assert fake_client.bindings[(DEFAULT_PROJECT, "app-stdout")] == ["legacy-group", "k8s-group-default"]

    def test_group_failure_carries_config_context(self, reconciler, fake_client, file_spec) -> None:
        fake_client.always_fail["create_machine_group"] = ControlPlaneError("QuotaExceed", "too many", 400)

        with pytest.raises(ReconcileError) as exc_info:
            reconciler.binder.ensure_bound(file_spec, DEFAULT_PROJECT, config_existed=False)

        err = exc_info.value
        assert err.step == "create_machine_group"
        assert err.config_name == "app-stdout"
        assert err.logstore == "app-stdout"
        assert err.machine_group == "k8s-group-default"
        assert fake_client.count("bind_config_to_machine_group") == 0

    def test_lookup_failure_is_fatal(self, reconciler, fake_client, file_spec) -> None:
        fake_client.always_fail["get_bound_machine_groups"] = ConnectionError("reset")

        with pytest.raises(ReconcileError) as exc_info:
            reconciler.binder.ensure_bound(file_spec, DEFAULT_PROJECT, config_existed=True)

        assert exc_info.value.step == "get_bound_machine_groups"
        assert fake_client.count("bind_config_to_machine_group") == 0

    def test_bind_failure_is_fatal(self, reconciler, fake_client, file_spec, notifier) -> None:
        fake_client.always_fail["bind_config_to_machine_group"] = ControlPlaneError("ConfigNotExist", "gone", 404)

        with pytest.raises(ReconcileError) as exc_info:
            reconciler.binder.ensure_bound(file_spec, DEFAULT_PROJECT, config_existed=False)

        assert exc_info.value.step == "bind_config_to_machine_group"
        assert fake_client.count("bind_config_to_machine_group") == 3
        assert notifier.failure_kinds() == [ResourceKind.BINDING]

"""Shared fixtures: an in-memory control plane, a fake clock and a recording notifier."""

from __future__ import annotations

import copy
from collections import defaultdict
from collections.abc import Mapping
from typing import Any

import pytest

from logrecon.errors import (
    CONFIG_ALREADY_EXIST,
    CONFIG_NOT_EXIST,
    INDEX_ALREADY_EXIST,
    LOGSTORE_ALREADY_EXIST,
    MACHINE_GROUP_ALREADY_EXIST,
    PROJECT_ALREADY_EXIST,
    ControlPlaneError,
)
from logrecon.models.config import CacheConfig, ReconcilerConfig, RetryConfig
from logrecon.models.spec import CollectionConfig, DesiredConfigSpec, MachineGroup
from logrecon.notifications.manager import EventNotifier, ResourceKind
from logrecon.reconcile.engine import Reconciler

DEFAULT_PROJECT = "k8s-log-c0ffee"

MUTATING_CALLS = frozenset(
    {
        "create_project",
        "create_logstore",
        "create_index",
        "create_product_logstore",
        "create_config",
        "update_config",
        "delete_config",
        "create_machine_group",
        "bind_config_to_machine_group",
    }
)


class FakeControlPlane:
    """In-memory control plane recording every call.

    ``failures[name]`` is a queue of exceptions raised (one per call) before
    the operation starts succeeding; ``always_fail[name]`` raises forever.
    """

    def __init__(self) -> None:
        self.projects: set[str] = set()
        self.logstores: dict[tuple[str, str], dict[str, Any]] = {}
        self.indexes: dict[tuple[str, str], dict[str, Any]] = {}
        self.product_logstores: list[tuple[str, str, str, str, str]] = []
        self.configs: dict[tuple[str, str], CollectionConfig] = {}
        self.machine_groups: dict[tuple[str, str], MachineGroup] = {}
        self.bindings: dict[tuple[str, str], list[str]] = defaultdict(list)
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.failures: dict[str, list[BaseException]] = defaultdict(list)
        self.always_fail: dict[str, BaseException] = {}

    # -- bookkeeping -------------------------------------------------------

    def _enter(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if name in self.always_fail:
            raise self.always_fail[name]
        queue = self.failures.get(name)
        if queue:
            raise queue.pop(0)

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    def mutating_calls(self) -> list[str]:
        return [call for call, _ in self.calls if call in MUTATING_CALLS]

    def reset_calls(self) -> None:
        self.calls.clear()

    # -- projects ----------------------------------------------------------

    def check_project_exists(self, project: str) -> bool:
        self._enter("check_project_exists", project)
        return project in self.projects

    def create_project(self, project: str, description: str) -> None:
        self._enter("create_project", project, description)
        if project in self.projects:
            raise ControlPlaneError(PROJECT_ALREADY_EXIST, f"project {project} already exist", 400)
        self.projects.add(project)

    # -- logstores ---------------------------------------------------------

    def check_logstore_exists(self, project: str, logstore: str) -> bool:
        self._enter("check_logstore_exists", project, logstore)
        return (project, logstore) in self.logstores

    def create_logstore(
        self,
        project: str,
        logstore: str,
        ttl_days: int,
        shard_count: int,
        auto_split: bool,
        max_split_shard: int,
    ) -> None:
        self._enter("create_logstore", project, logstore, ttl_days, shard_count)
        if (project, logstore) in self.logstores:
            raise ControlPlaneError(LOGSTORE_ALREADY_EXIST, f"logstore {logstore} already exist", 400)
        self.logstores[(project, logstore)] = {
            "ttl_days": ttl_days,
            "shard_count": shard_count,
            "auto_split": auto_split,
            "max_split_shard": max_split_shard,
        }

    def create_index(self, project: str, logstore: str, index: Mapping[str, Any]) -> None:
        self._enter("create_index", project, logstore)
        if (project, logstore) in self.indexes:
            raise ControlPlaneError(INDEX_ALREADY_EXIST, "index already exist", 400)
        self.indexes[(project, logstore)] = copy.deepcopy(dict(index))

    def create_product_logstore(self, region: str, project: str, logstore: str, product: str, lang: str) -> None:
        self._enter("create_product_logstore", region, project, logstore, product, lang)
        self.product_logstores.append((region, project, logstore, product, lang))

    # -- configs -----------------------------------------------------------

    def get_config(self, project: str, config_name: str) -> CollectionConfig:
        self._enter("get_config", project, config_name)
        stored = self.configs.get((project, config_name))
        if stored is None:
            raise ControlPlaneError(CONFIG_NOT_EXIST, f"config {config_name} does not exist", 404)
        return stored.clone()

    def create_config(self, project: str, config: CollectionConfig) -> None:
        self._enter("create_config", project, config.name)
        if (project, config.name) in self.configs:
            raise ControlPlaneError(CONFIG_ALREADY_EXIST, f"config {config.name} already exist", 400)
        self.configs[(project, config.name)] = config.clone()

    def update_config(self, project: str, config: CollectionConfig) -> None:
        self._enter("update_config", project, config.name)
        self.configs[(project, config.name)] = config.clone()

    def delete_config(self, project: str, config_name: str) -> None:
        self._enter("delete_config", project, config_name)
        if self.configs.pop((project, config_name), None) is None:
            raise ControlPlaneError(CONFIG_NOT_EXIST, f"config {config_name} does not exist", 404)

    # -- machine groups ----------------------------------------------------

    def check_machine_group_exists(self, project: str, group: str) -> bool:
        self._enter("check_machine_group_exists", project, group)
        return (project, group) in self.machine_groups

    def create_machine_group(self, project: str, group: MachineGroup) -> None:
        self._enter("create_machine_group", project, group.name)
        if (project, group.name) in self.machine_groups:
            raise ControlPlaneError(MACHINE_GROUP_ALREADY_EXIST, "machine group already exist", 400)
        self.machine_groups[(project, group.name)] = group

    def get_bound_machine_groups(self, project: str, config_name: str) -> list[str]:
        self._enter("get_bound_machine_groups", project, config_name)
        return list(self.bindings[(project, config_name)])

    def bind_config_to_machine_group(self, project: str, config_name: str, group: str) -> None:
        self._enter("bind_config_to_machine_group", project, config_name, group)
        bound = self.bindings[(project, config_name)]
        if group not in bound:
            bound.append(group)


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingNotifier(EventNotifier):
    def __init__(self) -> None:
        self.successes: list[tuple[ResourceKind, dict[str, str]]] = []
        self.failures: list[tuple[ResourceKind, dict[str, str], BaseException]] = []

    def notify_success(self, kind: ResourceKind, context: Mapping[str, str]) -> None:
        self.successes.append((kind, dict(context)))

    def notify_failure(self, kind: ResourceKind, context: Mapping[str, str], error: BaseException) -> None:
        self.failures.append((kind, dict(context), error))

    def success_kinds(self) -> list[ResourceKind]:
        return [kind for kind, _ in self.successes]

    def failure_kinds(self) -> list[ResourceKind]:
        return [kind for kind, _, _ in self.failures]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_client() -> FakeControlPlane:
    client = FakeControlPlane()
    client.projects.add(DEFAULT_PROJECT)
    return client


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def reconciler_config() -> ReconcilerConfig:
    return ReconcilerConfig(
        default_project=DEFAULT_PROJECT,
        default_region="cn-beijing",
        default_machine_group="k8s-group-default",
        logstore_settle_seconds=1.0,
        retry=RetryConfig(max_attempts=3, delay_seconds=0.1, project_delay_seconds=1.0),
        cache=CacheConfig(ttl_seconds=600),
    )


@pytest.fixture
def reconciler(
    fake_client: FakeControlPlane,
    reconciler_config: ReconcilerConfig,
    notifier: RecordingNotifier,
    sleeps: list[float],
    clock: FakeClock,
) -> Reconciler:
    return Reconciler(fake_client, reconciler_config, notifier=notifier, sleep=sleeps.append, clock=clock)


@pytest.fixture
def file_spec() -> DesiredConfigSpec:
    return DesiredConfigSpec(
        logstore="app-stdout",
        config_name="app-stdout",
        input_type="file",
        input_detail={
            "logType": "common_reg_log",
            "logPath": "/var/log/app",
            "filePattern": "*.log",
            "dockerFile": True,
            "dockerIncludeEnv": {"APP": "web"},
        },
        simple_config_mode=True,
    )

"""Capability set the reconciler needs from a control-plane client.

Implementations wrap a concrete SDK. They raise
:class:`~logrecon.errors.ControlPlaneError` for failures the service
classifies (error code / HTTP status); anything else they raise is treated
as transient and retried.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from logrecon.models.spec import CollectionConfig, MachineGroup


@runtime_checkable
class LogControlPlaneClient(Protocol):
    # Projects
    def check_project_exists(self, project: str) -> bool: ...

    def create_project(self, project: str, description: str) -> None: ...

    # Logstores and indexes
    def check_logstore_exists(self, project: str, logstore: str) -> bool: ...

    def create_logstore(
        self,
        project: str,
        logstore: str,
        ttl_days: int,
        shard_count: int,
        auto_split: bool,
        max_split_shard: int,
    ) -> None: ...

    def create_index(self, project: str, logstore: str, index: Mapping[str, Any]) -> None: ...

    def create_product_logstore(self, region: str, project: str, logstore: str, product: str, lang: str) -> None: ...

    # Collection configs
    def get_config(self, project: str, config_name: str) -> CollectionConfig: ...

    def create_config(self, project: str, config: CollectionConfig) -> None: ...

    def update_config(self, project: str, config: CollectionConfig) -> None: ...

    def delete_config(self, project: str, config_name: str) -> None: ...

    # Machine groups
    def check_machine_group_exists(self, project: str, group: str) -> bool: ...

    def create_machine_group(self, project: str, group: MachineGroup) -> None: ...

    def get_bound_machine_groups(self, project: str, config_name: str) -> list[str]: ...

    def bind_config_to_machine_group(self, project: str, config_name: str, group: str) -> None: ...

"""Desired-state spec and remote resource data structures."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeAlias

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

INPUT_TYPE_FILE = "file"
OUTPUT_TYPE_LOG_SERVICE = "LogService"
MACHINE_ID_TYPE_USER_DEFINED = "userdefined"


class ConfigAction(StrEnum):
    """What the config reconciler did to the remote config."""

    CREATED = "created"
    PATCHED = "patched"
    REPLACED = "replaced"
    UNCHANGED = "unchanged"


# ---------------------------------------------------------------------------
# Desired state
# ---------------------------------------------------------------------------


class DesiredConfigSpec(BaseModel):
    """Declared intent for one collection config.

    Accepts snake_case field names as well as the camelCase keys used by the
    AliyunLogConfig custom resource, including its nested ``logtailConfig``
    block::

        DesiredConfigSpec.model_validate({
            "logstore": "app-stdout",
            "shardCount": 4,
            "logtailConfig": {
                "configName": "app-stdout",
                "inputType": "plugin",
                "logtailConfig": {"plugin": {...}},
            },
        })
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    project: str = ""
    logstore: str
    shard_count: int | None = Field(default=None, validation_alias=AliasChoices("shard_count", "shardCount"))
    life_cycle_days: int | None = Field(
        default=None,
        validation_alias=AliasChoices("life_cycle_days", "lifeCycleDays", "lifeCycle"),
    )
    product_code: str = Field(default="", validation_alias=AliasChoices("product_code", "productCode"))
    product_lang: str = Field(default="", validation_alias=AliasChoices("product_lang", "productLang"))
    config_name: str = Field(default="", validation_alias=AliasChoices("config_name", "configName"))
    input_type: str = Field(default="", validation_alias=AliasChoices("input_type", "inputType"))
    input_detail: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("input_detail", "inputDetail"),
    )
    machine_groups: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("machine_groups", "machineGroups"),
    )
    simple_config_mode: bool = Field(
        default=False,
        validation_alias=AliasChoices("simple_config_mode", "simpleConfigMode", "simpleConfig"),
    )

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        """Lift the CRD's nested ``logtailConfig`` block and default the config name."""
        if not isinstance(data, dict):
            return data
        flat = dict(data)
        nested = flat.pop("logtailConfig", None)
        if isinstance(nested, dict):
            flat.setdefault("configName", nested.get("configName", ""))
            flat.setdefault("inputType", nested.get("inputType", ""))
            flat.setdefault("inputDetail", nested.get("logtailConfig", nested.get("inputDetail")) or {})
        if not (flat.get("config_name") or flat.get("configName")):
            flat.pop("configName", None)
            flat["config_name"] = flat.get("logstore", "")
        return flat

    @field_validator("logstore")
    @classmethod
    def _logstore_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("logstore must not be empty")
        return value

    @property
    def effective_input_type(self) -> str:
        return self.input_type or INPUT_TYPE_FILE

    def resolve_project(self, default_project: str) -> str:
        return self.project or default_project

    def target_machine_group(self, default_group: str) -> str:
        """First declared machine group, else *default_group*."""
        return self.machine_groups[0] if self.machine_groups else default_group


# ---------------------------------------------------------------------------
# Remote resources
# ---------------------------------------------------------------------------


@dataclass
class CollectionConfig:
    """A collection config as pushed to, or fetched from, the control plane.

    Fetched instances are snapshots: they live for one reconciliation pass
    and are never cached.
    """

    name: str
    input_type: str
    input_detail: dict[str, Any] = field(default_factory=dict)
    output_project: str = ""
    output_logstore: str = ""
    output_type: str = OUTPUT_TYPE_LOG_SERVICE

    def clone(self) -> CollectionConfig:
        return CollectionConfig(
            name=self.name,
            input_type=self.input_type,
            input_detail=copy.deepcopy(self.input_detail),
            output_project=self.output_project,
            output_logstore=self.output_logstore,
            output_type=self.output_type,
        )


RemoteConfigSnapshot: TypeAlias = CollectionConfig


@dataclass(frozen=True)
class MachineGroup:
    """A named set of collection agents identified by user-defined IDs."""

    name: str
    machine_id_type: str = MACHINE_ID_TYPE_USER_DEFINED
    machine_ids: tuple[str, ...] = ()

    @classmethod
    def user_defined(cls, name: str) -> MachineGroup:
        return cls(name=name, machine_ids=(name,))


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConfigOutcome:
    existed: bool
    action: ConfigAction


@dataclass(frozen=True)
class ReconcileResult:
    """Summary of one successful reconciliation pass."""

    project: str
    logstore: str
    config_name: str
    machine_group: str
    config_action: ConfigAction
    bound: bool
    duration_seconds: float

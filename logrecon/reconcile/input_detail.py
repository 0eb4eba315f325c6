"""Input-detail helpers: required defaults and file-config drift detection."""

from __future__ import annotations

import copy
import json
from collections.abc import Mapping
from typing import Any

LOG_PATH = "logPath"
FILE_PATTERN = "filePattern"
INCLUDE_ENV = "dockerIncludeEnv"
INCLUDE_LABEL = "dockerIncludeLabel"

# Fields compared and patched in simple config mode for file inputs.
SIMPLE_FILE_FIELDS: tuple[str, ...] = (LOG_PATH, FILE_PATTERN, INCLUDE_ENV, INCLUDE_LABEL)

_COMMON_DEFAULTS: dict[str, Any] = {
    "localStorage": True,
    "fileEncoding": "utf8",
    "maxDepth": 100,
    "topicFormat": "none",
    "discardUnmatch": False,
    "enableRawLog": False,
    "preserve": True,
}

_LOG_TYPE_DEFAULTS: dict[str, dict[str, Any]] = {
    "common_reg_log": {"logBeginRegex": ".*", "regex": "(.*)", "key": ["content"]},
    "json_log": {"timeKey": ""},
    "delimiter_log": {"separator": ",", "quote": '"', "key": ["content"]},
}


def with_required_fields(input_detail: Mapping[str, Any]) -> dict[str, Any]:
    """Deep copy *input_detail* and fill in the fields the service requires.

    Declared values always win; only missing keys are added.
    """
    detail = copy.deepcopy(dict(input_detail))
    for key, value in _COMMON_DEFAULTS.items():
        detail.setdefault(key, value)
    log_type = detail.get("logType")
    if isinstance(log_type, str):
        for key, value in _LOG_TYPE_DEFAULTS.get(log_type, {}).items():
            detail.setdefault(key, copy.deepcopy(value))
    return detail


def as_string(value: Any) -> str:
    return value if isinstance(value, str) else ""


def normalized_json(value: Any) -> str:
    """Stable JSON text for comparing filter maps (key order insensitive)."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def file_config_changed(desired: Mapping[str, Any], remote: Mapping[str, Any]) -> bool:
    """True when any simple-mode file field differs between *desired* and *remote*."""
    return (
        as_string(desired.get(LOG_PATH)) != as_string(remote.get(LOG_PATH))
        or as_string(desired.get(FILE_PATTERN)) != as_string(remote.get(FILE_PATTERN))
        or normalized_json(desired.get(INCLUDE_ENV)) != normalized_json(remote.get(INCLUDE_ENV))
        or normalized_json(desired.get(INCLUDE_LABEL)) != normalized_json(remote.get(INCLUDE_LABEL))
    )


def patch_file_fields(remote: Mapping[str, Any], desired: Mapping[str, Any]) -> dict[str, Any]:
    """Merge the simple-mode file fields of *desired* into a copy of *remote*.

    Keys that exist only remotely are preserved.  A filter the desired spec
    leaves undeclared is removed so the next comparison converges.
    """
    merged = copy.deepcopy(dict(remote))
    for key in SIMPLE_FILE_FIELDS:
        value = desired.get(key)
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def declared_fields_drifted(desired: Mapping[str, Any], remote: Mapping[str, Any]) -> list[str]:
    """Names of declared keys whose remote value differs; remote-only keys are ignored."""
    return sorted(
        key for key, value in desired.items() if normalized_json(value) != normalized_json(remote.get(key))
    )

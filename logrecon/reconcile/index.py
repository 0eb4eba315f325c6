"""Default index attached to logstores created for container logs."""

from __future__ import annotations

from typing import Any

# Punctuation the full-text tokenizer splits on.
DEFAULT_TOKENS: tuple[str, ...] = (
    " ", "\n", "\t", "\r", ",", ";", "[", "]", "{", "}", "(", ")", "&", "^", "*",
    "#", "@", "~", "=", "<", ">", "/", "\\", "?", ":", "'", '"',
)  # fmt: skip

# Container, pod and namespace tags attached by the collection agent.
DEFAULT_INDEXED_KEYS: tuple[str, ...] = (
    "__tag__:__hostname__",
    "__tag__:__path__",
    "__tag__:_container_ip_",
    "__tag__:_container_name_",
    "__tag__:_image_name_",
    "__tag__:_namespace_",
    "__tag__:_pod_name_",
    "__tag__:_pod_uid_",
    "_container_ip_",
    "_container_name_",
    "_image_name_",
    "_namespace_",
    "_pod_name_",
    "_pod_uid_",
    "_source_",
)


def _text_key() -> dict[str, Any]:
    return {
        "type": "text",
        "token": list(DEFAULT_TOKENS),
        "caseSensitive": False,
        "doc_value": True,
    }


def default_index() -> dict[str, Any]:
    """Build a fresh default index document (line index plus tag keys)."""
    return {
        "line": {
            "token": list(DEFAULT_TOKENS),
            "caseSensitive": False,
        },
        "keys": {key: _text_key() for key in DEFAULT_INDEXED_KEYS},
    }

"""
JSON rendering of repeated option values.

Turns the typed lists and maps collected from the command line into the
JSON shapes the OCI image config uses: arrays for ordered fields, objects
with empty-object values for set-like fields (ExposedPorts, Volumes), and
string maps for labels. String escaping is left to the json module.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Literal, Optional

__all__ = [
    "to_json_array",
    "to_presence_set",
    "to_string_map",
    "split_key_value",
    "to_json_scalar",
    "encode_json",
    "encode_json_bytes",
]


def to_json_array(values: Optional[Iterable[str]]) -> List[str]:
    """Ordered values as a JSON array; ``None`` and empty give ``[]``."""
    return [str(v) for v in values or ()]


def to_presence_set(values: Optional[Iterable[str]]) -> Dict[str, Dict[str, Any]]:
    """
    Values as a JSON object whose values are all ``{}``.

    This is how OCI spells a set, e.g. ``{"80/tcp": {}}`` for ExposedPorts.
    Repeated values collapse into one key.
    """
    return {str(v): {} for v in values or ()}


def split_key_value(entry: str) -> tuple[str, str]:
    """
    Split ``key=value`` on the first ``=``.

    Raises:
        ValueError: If there is no ``=`` or the key is empty
    """
    key, sep, value = entry.partition("=")
    if not sep:
        raise ValueError(f"Expected KEY=VALUE, got {entry!r}")
    if not key:
        raise ValueError(f"Empty key in {entry!r}")
    return key, value


def to_string_map(entries: Optional[Iterable[str]]) -> Dict[str, str]:
    """
    Build a string map from ``key=value`` entries.

    Duplicate keys: the last entry wins.
    """
    result: Dict[str, str] = {}
    for entry in entries or ():
        key, value = split_key_value(entry)
        result[key] = value
    return result


def to_json_scalar(value: Optional[str], *, empty: Literal["null", "empty"] = "empty") -> Optional[str]:
    """
    Render a single optional string.

    ``None`` or ``""`` becomes JSON ``null`` when ``empty="null"`` and ``""``
    when ``empty="empty"``. The policy is chosen per field: ``author`` is
    null when absent, other optional strings are empty.
    """
    if value is None or value == "":
        if empty == "null":
            return None
        if empty == "empty":
            return ""
        raise ValueError(f"Unknown empty policy: {empty}")
    return value


def encode_json(value: Any) -> str:
    """
    Canonical JSON text.

    Sorted keys, no whitespace, non-ASCII escaped. Identical documents
    therefore always produce identical bytes and identical digests.
    """
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def encode_json_bytes(value: Any) -> bytes:
    return encode_json(value).encode("utf-8")

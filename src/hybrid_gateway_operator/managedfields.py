"""Server-side apply managed fields: extraction, pruning and comparison.

The API server records which fields each manager owns in
``metadata.managedFields[].fieldsV1``. Comparing what we would apply against
the fields we already own tells us whether an apply is needed, without
tripping over fields defaulted by the server or owned by other managers.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from .gvk import (
    KONG_PLUGIN_BINDING_GVK,
    KONG_PLUGIN_GVK,
    KONG_ROUTE_GVK,
    KONG_SERVICE_GVK,
    KONG_TARGET_GVK,
    KONG_UPSTREAM_GVK,
    SERVICE_GVK,
    GroupVersionKind,
)
from .utils.errors import ValidationError

logger = logging.getLogger(__name__)

# Kinds whose shape this operator knows and may compare
SUPPORTED_GVKS = frozenset({
    KONG_ROUTE_GVK,
    KONG_SERVICE_GVK,
    KONG_UPSTREAM_GVK,
    KONG_TARGET_GVK,
    KONG_PLUGIN_GVK,
    KONG_PLUGIN_BINDING_GVK,
    SERVICE_GVK,
})

APPLY_OPERATION = "Apply"


def extract_managed_fields(obj: dict[str, Any], field_manager: str) -> dict[str, Any] | None:
    """Extract the part of a live object owned by ``field_manager`` through apply.

    Args:
        obj: Live object as returned by the API server
        field_manager: Field manager name used when applying

    Returns:
        Object dict holding ``apiVersion``, ``kind`` and the owned fields,
        or None when the manager has no apply entry on the object
    """
    entries = [
        entry
        for entry in obj.get("metadata", {}).get("managedFields") or []
        if entry.get("manager") == field_manager
        and entry.get("operation") == APPLY_OPERATION
        and not entry.get("subresource")
    ]
    if not entries:
        return None

    snapshot: dict[str, Any] = {}
    for entry in entries:
        fields = entry.get("fieldsV1") or {}
        _merge(snapshot, _extract(obj, fields))

    snapshot["apiVersion"] = obj.get("apiVersion")
    snapshot["kind"] = obj.get("kind")
    return _prune_empty_maps(snapshot)


def _extract(value: Any, fields: dict[str, Any]) -> Any:
    if not fields:
        return copy.deepcopy(value)

    if isinstance(value, dict):
        result: dict[str, Any] = {}
        for key, sub_fields in fields.items():
            if not key.startswith("f:"):
                continue
            name = key[2:]
            if name in value:
                result[name] = _extract(value[name], sub_fields)
        return result

    if isinstance(value, list):
        item_keys = [key for key in fields if key[:2] in ("k:", "v:", "i:")]
        if not item_keys:
            return copy.deepcopy(value)
        items = []
        for index, item in enumerate(value):
            for key in item_keys:
                if _list_item_matches(key, item, index):
                    items.append(_extract(item, fields[key]))
                    break
        return items

    return copy.deepcopy(value)


def _list_item_matches(key: str, item: Any, index: int) -> bool:
    prefix, raw = key[:2], key[2:]
    if prefix == "i:":
        return raw.isdigit() and int(raw) == index
    try:
        wanted = json.loads(raw)
    except ValueError:
        logger.debug(f"Ignoring unparsable managed field key {key!r}")
        return False
    if prefix == "v:":
        return item == wanted
    if not isinstance(item, dict) or not isinstance(wanted, dict):
        return False
    return all(item.get(k) == v for k, v in wanted.items())


def _merge(target: dict[str, Any], source: dict[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge(target[key], value)
        else:
            target[key] = value


def _prune_empty_maps(value: Any) -> Any:
    if not isinstance(value, dict):
        return value
    pruned = {}
    for key, item in value.items():
        item = _prune_empty_maps(item)
        if isinstance(item, dict) and not item:
            continue
        pruned[key] = item
    return pruned


def prune_desired_obj(obj: dict[str, Any]) -> dict[str, Any]:
    """Prepare a desired object for comparison against a managed fields snapshot.

    Identity fields (name, namespace, generateName) are not part of the
    snapshot so they are dropped, then every empty map is removed.
    The input is left untouched.
    """
    pruned = copy.deepcopy(obj)
    metadata = pruned.get("metadata")
    if isinstance(metadata, dict):
        for key in ("name", "namespace", "generateName"):
            metadata.pop(key, None)
    return _prune_empty_maps(pruned)


@dataclass
class Comparison:
    """Field paths that differ between two objects, e.g. ``.spec.paths``."""

    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.modified)

    def __str__(self) -> str:
        return f"added={self.added} removed={self.removed} modified={self.modified}"


def _validate(obj: dict[str, Any], side: str) -> GroupVersionKind:
    api_version = obj.get("apiVersion")
    kind = obj.get("kind")
    if not isinstance(api_version, str) or not api_version or not isinstance(kind, str) or not kind:
        raise ValidationError(f"{side} object is missing apiVersion or kind")
    gvk = GroupVersionKind.from_api_version(api_version, kind)
    if gvk not in SUPPORTED_GVKS:
        raise ValidationError(f"{side} object has unsupported type {gvk}")
    metadata = obj.get("metadata", {})
    if not isinstance(metadata, dict):
        raise ValidationError(f"{side} object metadata must be an object")
    for key in ("name", "namespace"):
        if key in metadata and not isinstance(metadata[key], str):
            raise ValidationError(f"{side} object metadata.{key} must be a string")
    return gvk


def compare(current: dict[str, Any], desired: dict[str, Any]) -> Comparison:
    """Structurally compare two objects of the same supported type.

    Maps are compared key by key; lists and scalars are compared as a whole.

    Raises:
        ValidationError: If either object is malformed, unsupported, or the
            two types differ
    """
    current_gvk = _validate(current, "current")
    desired_gvk = _validate(desired, "desired")
    if current_gvk != desired_gvk:
        raise ValidationError(f"cannot compare {current_gvk} with {desired_gvk}")

    comparison = Comparison()
    _diff(current, desired, "", comparison)
    return comparison


def _diff(current: dict[str, Any], desired: dict[str, Any], path: str, comparison: Comparison) -> None:
    for key in sorted(set(current) | set(desired)):
        key_path = f"{path}.{key}"
        if key not in current:
            comparison.added.append(key_path)
        elif key not in desired:
            comparison.removed.append(key_path)
        elif isinstance(current[key], dict) and isinstance(desired[key], dict):
            _diff(current[key], desired[key], key_path, comparison)
        elif current[key] != desired[key]:
            comparison.modified.append(key_path)

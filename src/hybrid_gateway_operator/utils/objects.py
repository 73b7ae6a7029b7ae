"""Helpers for working with Kubernetes objects represented as dicts."""

from __future__ import annotations

from typing import Any, Mapping

from .errors import ValidationError

_SELECTOR_OPERATORS = {"In", "NotIn", "Exists", "DoesNotExist"}


def nested_get(obj: Mapping[str, Any] | None, *path: str, default: Any = None) -> Any:
    """Walk nested mappings, returning ``default`` on any missing or non-mapping step."""
    current: Any = obj
    for key in path:
        if not isinstance(current, Mapping) or key not in current:
            return default
        current = current[key]
    if current is None:
        return default
    return current


def object_key(obj: Mapping[str, Any]) -> str:
    """Return ``namespace/name`` for an object (``name`` for cluster-scoped ones)."""
    metadata = obj.get("metadata") or {}
    namespace = metadata.get("namespace", "")
    name = metadata.get("name", "")
    return f"{namespace}/{name}" if namespace else name


def namespaced_name(namespace: str, name: str) -> str:
    return f"{namespace}/{name}"


def format_label_selector(labels: Mapping[str, str]) -> str:
    """Render an equality-based label selector string (``k=v,k2=v2``)."""
    return ",".join(f"{key}={value}" for key, value in sorted(labels.items()))


def labels_match(selector: Mapping[str, str], labels: Mapping[str, str] | None) -> bool:
    """Return True if every selector pair is present in labels."""
    labels = labels or {}
    return all(labels.get(key) == value for key, value in selector.items())


def selector_matches(selector: Mapping[str, Any], labels: Mapping[str, str] | None) -> bool:
    """Evaluate a metav1.LabelSelector against a label set.

    An empty selector matches everything.

    Raises:
        ValidationError: If the selector is malformed
    """
    if not isinstance(selector, Mapping):
        raise ValidationError(f"label selector must be an object, got {type(selector).__name__}")

    labels = labels or {}
    match_labels = selector.get("matchLabels") or {}
    if not isinstance(match_labels, Mapping):
        raise ValidationError("matchLabels must be an object")
    if not labels_match(match_labels, labels):
        return False

    for expression in selector.get("matchExpressions") or []:
        if not isinstance(expression, Mapping):
            raise ValidationError("matchExpressions entries must be objects")
        key = expression.get("key")
        operator = expression.get("operator")
        values = expression.get("values") or []
        if not key:
            raise ValidationError("matchExpressions entry is missing a key")
        if operator not in _SELECTOR_OPERATORS:
            raise ValidationError(f"{operator!r} is not a valid label selector operator")
        if operator in ("In", "NotIn") and not values:
            raise ValidationError(f"values must be non-empty for operator {operator}")
        if operator in ("Exists", "DoesNotExist") and values:
            raise ValidationError(f"values must be empty for operator {operator}")

        if operator == "In" and labels.get(key) not in values:
            return False
        if operator == "NotIn" and key in labels and labels[key] in values:
            return False
        if operator == "Exists" and key not in labels:
            return False
        if operator == "DoesNotExist" and key in labels:
            return False

    return True

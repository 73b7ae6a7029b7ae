"""Utilities for managing Kubernetes conditions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..constants import (
    COND_PROGRAMMED,
    KIND_KONG_PLUGIN,
    KIND_KONG_PLUGIN_BINDING,
    KIND_KONG_ROUTE,
    KIND_KONG_SERVICE,
    KIND_KONG_TARGET,
    KIND_KONG_UPSTREAM,
    STATUS_FALSE,
    STATUS_TRUE,
    STATUS_UNKNOWN,
)
from .objects import nested_get

# Kinds that get a "<Kind>Programmed" condition on the route
PROGRAMMED_CONDITION_KINDS = (
    KIND_KONG_ROUTE,
    KIND_KONG_SERVICE,
    KIND_KONG_UPSTREAM,
    KIND_KONG_TARGET,
    KIND_KONG_PLUGIN,
    KIND_KONG_PLUGIN_BINDING,
)

MESSAGE_PROGRAMMED = "Resource is programmed"
MESSAGE_NOT_PROGRAMMED = "Resource is not programmed"

# Higher wins when several conditions share a type
_SEVERITY = {STATUS_TRUE: 0, STATUS_UNKNOWN: 1, STATUS_FALSE: 2}


def condition_severity(status: str | None) -> int:
    """Rank a condition status; unrecognised values rank with False."""
    return _SEVERITY.get(status or "", _SEVERITY[STATUS_FALSE])


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def new_condition(
    condition_type: str,
    status: str,
    reason: str,
    message: str,
    observed_generation: int | None = None,
) -> dict[str, Any]:
    """Build a condition dict without a transition time."""
    condition: dict[str, Any] = {
        "type": condition_type,
        "status": status,
        "reason": reason,
        "message": message,
    }
    if observed_generation is not None:
        condition["observedGeneration"] = observed_generation
    return condition


def set_condition_meta(condition: dict[str, Any], obj: dict[str, Any]) -> dict[str, Any]:
    """Stamp a condition with the object's generation and the current time."""
    condition["observedGeneration"] = nested_get(obj, "metadata", "generation", default=0)
    condition["lastTransitionTime"] = _now()
    return condition


def is_condition_equal(a: dict[str, Any], b: dict[str, Any]) -> bool:
    """Compare two conditions ignoring lastTransitionTime."""
    return (
        a.get("type") == b.get("type")
        and a.get("status") == b.get("status")
        and a.get("reason") == b.get("reason")
        and a.get("message") == b.get("message")
        and a.get("observedGeneration") == b.get("observedGeneration")
    )


def find_condition(conditions: list[dict[str, Any]] | None, condition_type: str) -> dict[str, Any] | None:
    for cond in conditions or []:
        if cond.get("type") == condition_type:
            return cond
    return None


def get_programmed_condition_for_gvk(gvk: Any, programmed: bool) -> dict[str, Any]:
    """Build the ``<Kind>Programmed`` condition for a generated resource kind.

    Args:
        gvk: GroupVersionKind of the generated resource
        programmed: Whether the generated object is programmed

    Returns:
        Condition dict, or an empty dict for kinds without such a condition
    """
    kind = gvk.kind
    if kind not in PROGRAMMED_CONDITION_KINDS:
        return {}
    condition_type = f"{kind}{COND_PROGRAMMED}"
    if programmed:
        return new_condition(condition_type, STATUS_TRUE, f"{kind}Programmed", MESSAGE_PROGRAMMED)
    return new_condition(condition_type, STATUS_FALSE, f"{kind}NotProgrammed", MESSAGE_NOT_PROGRAMMED)


def deduplicate_conditions_by_type(conditions: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Keep one condition per type, the most severe one (False > Unknown > True).

    Types keep the position of their first occurrence.
    """
    result: list[dict[str, Any]] = []
    positions: dict[str, int] = {}
    for cond in conditions:
        if not cond:
            continue
        condition_type = cond.get("type", "")
        if condition_type not in positions:
            positions[condition_type] = len(result)
            result.append(cond)
            continue
        idx = positions[condition_type]
        current = result[idx]
        if condition_severity(cond.get("status")) > condition_severity(current.get("status")):
            result[idx] = cond
    return result


def is_programmed(obj: dict[str, Any]) -> bool:
    """Return True if the object reports ``Programmed=True`` in its status."""
    cond = find_condition(nested_get(obj, "status", "conditions", default=[]), COND_PROGRAMMED)
    return cond is not None and cond.get("status") == STATUS_TRUE

"""Backend reference resolution and ReferenceGrant permission checks."""

from __future__ import annotations

import logging
from typing import Any

from ..constants import (
    COND_RESOLVED_REFS,
    GATEWAY_API_GROUP,
    KIND_HTTP_ROUTE,
    KIND_SERVICE,
    REASON_BACKEND_NOT_FOUND,
    REASON_INVALID_KIND,
    REASON_REF_NOT_PERMITTED,
    REASON_RESOLVED_REFS,
    STATUS_FALSE,
    STATUS_TRUE,
)
from ..gvk import REFERENCE_GRANT_GVK, SERVICE_GVK
from ..utils.conditions import new_condition, set_condition_meta
from ..utils.objects import namespaced_name

logger = logging.getLogger(__name__)

MESSAGE_RESOLVED_REFS = "All backend references are resolved"


def is_backend_ref_group_kind_supported(group: str | None, kind: str | None) -> bool:
    """Only core Services can be backends; group and kind may be omitted."""
    return group in (None, "", "core") and kind in (None, KIND_SERVICE)


def backend_ref_namespace(route: dict[str, Any], backend_ref: dict[str, Any]) -> str:
    return backend_ref.get("namespace") or route.get("metadata", {}).get("namespace", "")


def iter_backend_refs(route: dict[str, Any]):
    """Yield every backendRef of every rule, in order."""
    for rule in route.get("spec", {}).get("rules") or []:
        for backend_ref in rule.get("backendRefs") or []:
            yield backend_ref


def check_reference_grant(
    grants: list[dict[str, Any]],
    route: dict[str, Any],
    backend_ref: dict[str, Any],
    backend_namespace: str,
) -> bool:
    """Return True if a grant in ``backend_namespace`` permits the reference.

    A grant permits it when one ``from`` entry matches the route's group, kind
    and namespace and one ``to`` entry matches the backend's group, kind and
    either has no name or names the backend.
    """
    route_namespace = route.get("metadata", {}).get("namespace", "")
    route_kind = route.get("kind") or KIND_HTTP_ROUTE
    backend_group = backend_ref.get("group") or ""
    if backend_group == "core":
        backend_group = ""
    backend_kind = backend_ref.get("kind") or KIND_SERVICE
    backend_name = backend_ref.get("name", "")

    for grant in grants:
        if grant.get("metadata", {}).get("namespace", backend_namespace) != backend_namespace:
            continue
        spec = grant.get("spec", {})
        from_matches = any(
            entry.get("group") == GATEWAY_API_GROUP
            and entry.get("kind") == route_kind
            and entry.get("namespace") == route_namespace
            for entry in spec.get("from") or []
        )
        if not from_matches:
            continue
        for entry in spec.get("to") or []:
            to_group = entry.get("group") or ""
            if to_group == "core":
                to_group = ""
            if to_group != backend_group or entry.get("kind") != backend_kind:
                continue
            if not entry.get("name") or entry.get("name") == backend_name:
                return True
    return False


def _resolved_refs_reason(client: Any, route: dict[str, Any], enable_reference_grant: bool) -> tuple[str, str]:
    route_namespace = route.get("metadata", {}).get("namespace", "")

    for backend_ref in iter_backend_refs(route):
        namespace = backend_ref_namespace(route, backend_ref)
        target = namespaced_name(namespace, backend_ref.get("name", ""))
        group = backend_ref.get("group")
        kind = backend_ref.get("kind")
        group_kind = f"{group}/{kind or KIND_SERVICE}" if group else (kind or KIND_SERVICE)

        if not is_backend_ref_group_kind_supported(group, kind):
            return REASON_INVALID_KIND, f"target {target} has unsupported type {group_kind}"

        if client.get(SERVICE_GVK, namespace, backend_ref.get("name", "")) is None:
            return REASON_BACKEND_NOT_FOUND, f"target {target} of type {group_kind} does not exist"

        if namespace == route_namespace:
            continue

        different_namespace = f"{target} is in a different namespace than the HTTPRoute (namespace {route_namespace})"
        if not enable_reference_grant:
            return REASON_REF_NOT_PERMITTED, f"{different_namespace} install ReferenceGrant CRD and configure a proper grant"

        grants = client.list(REFERENCE_GRANT_GVK, namespace=namespace)
        if not grants:
            return REASON_REF_NOT_PERMITTED, f"No ReferenceGrants found in namespace {namespace}: {different_namespace}"
        if not check_reference_grant(grants, route, backend_ref, namespace):
            return REASON_REF_NOT_PERMITTED, f"{different_namespace} and no ReferenceGrant allowing reference is configured"

    return REASON_RESOLVED_REFS, MESSAGE_RESOLVED_REFS


def build_resolved_refs_condition(client: Any, route: dict[str, Any], enable_reference_grant: bool) -> dict[str, Any]:
    """Build the ResolvedRefs condition, failing on the first unresolvable backendRef.

    Args:
        client: Cluster client
        route: Route object
        enable_reference_grant: Whether ReferenceGrants may permit cross-namespace refs

    Returns:
        ResolvedRefs condition stamped with the route generation
    """
    reason, message = _resolved_refs_reason(client, route, enable_reference_grant)
    status = STATUS_TRUE if reason == REASON_RESOLVED_REFS else STATUS_FALSE
    if status == STATUS_FALSE:
        logger.debug(f"Route backend references not resolved: {reason}: {message}")
    return set_condition_meta(new_condition(COND_RESOLVED_REFS, status, reason, message), route)

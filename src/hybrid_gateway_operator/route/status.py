"""Route status computation shared by every route kind.

Conditions are computed per parentRef and merged into the route's
``status.parents`` entry owned by this controller. Entries written by other
controllers are never modified.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from kubernetes.client.exceptions import ApiException

from ..constants import (
    COND_ACCEPTED,
    COND_PROGRAMMED,
    GATEWAY_API_GROUP,
    KIND_GATEWAY,
    NAMESPACES_FROM_ALL,
    NAMESPACES_FROM_SAME,
    NAMESPACES_FROM_SELECTOR,
    PROTOCOL_HTTP,
    PROTOCOL_HTTPS,
    REASON_ACCEPTED,
    REASON_NO_MATCHING_LISTENER_HOSTNAME,
    REASON_NO_MATCHING_PARENT,
    REASON_NOT_ALLOWED_BY_LISTENERS,
    STATUS_FALSE,
    STATUS_TRUE,
    TLS_MODE_TERMINATE,
)
from ..gvk import GATEWAY_CLASS_GVK, GATEWAY_GVK, GroupVersionKind
from ..metadata import is_generated_for_parent, label_selector_for_owned_resources
from ..utils.cache import get_cached_object, make_cache_key, set_cached_object
from ..utils.conditions import (
    PROGRAMMED_CONDITION_KINDS,
    _now,
    deduplicate_conditions_by_type,
    find_condition,
    get_programmed_condition_for_gvk,
    is_condition_equal,
    is_programmed,
    new_condition,
    set_condition_meta,
)
from ..utils.errors import (
    ConflictError,
    NoGatewayClassFoundError,
    NoGatewayControllerError,
    NoGatewayFoundError,
    OperatorError,
    ValidationError,
    is_conflict,
)
from ..utils.objects import object_key, selector_matches
from .hostname import hostname_intersection

logger = logging.getLogger(__name__)

MESSAGE_ACCEPTED = "The route is accepted by the gateway"
MESSAGE_LISTENER_NOT_READY = "A Gateway Listener matches this route but is not ready"
MESSAGE_NOT_ALLOWED = "No Gateway Listener allows this route"
MESSAGE_NO_HOSTNAME = "No Gateway Listener hostname matches this route"

_PARENT_REF_FIELDS = ("group", "kind", "namespace", "name", "sectionName", "port")


def parent_ref_key(parent_ref: dict[str, Any]) -> str:
    """Render ``group/kind/namespace/name/sectionName/port`` with unset parts empty."""
    parts = []
    for key in _PARENT_REF_FIELDS:
        value = parent_ref.get(key)
        parts.append("" if value is None else str(value))
    return "/".join(parts)


def is_parent_ref_equal(a: dict[str, Any], b: dict[str, Any]) -> bool:
    """Field-by-field equality where an unset field only equals an unset field."""
    return all(a.get(key) == b.get(key) for key in _PARENT_REF_FIELDS)


def get_route_group_kind(route: dict[str, Any]) -> dict[str, str]:
    """Return the route's ``{group, kind}``, defaulting the group to the Gateway API group."""
    gvk = GroupVersionKind.from_object(route)
    return {"group": gvk.group or GATEWAY_API_GROUP, "kind": gvk.kind}


def get_supported_gateway_for_parent_ref(
    client: Any,
    parent_ref: dict[str, Any],
    route_namespace: str,
    controller_name: str,
) -> dict[str, Any] | None:
    """Resolve a parentRef to a Gateway served by this controller.

    Args:
        client: Cluster client
        parent_ref: The route's parentRef
        route_namespace: Namespace used when the parentRef sets none
        controller_name: GatewayClass controllerName this operator owns

    Returns:
        The Gateway object, or None when the parentRef is not a Gateway

    Raises:
        NoGatewayFoundError: The Gateway does not exist
        NoGatewayClassFoundError: Its GatewayClass does not exist
        NoGatewayControllerError: The GatewayClass has another controller
    """
    kind = parent_ref.get("kind")
    if kind is not None and kind != KIND_GATEWAY:
        logger.debug(f"Ignoring parentRef with unsupported kind {kind}")
        return None
    group = parent_ref.get("group")
    if group is not None and group != GATEWAY_API_GROUP:
        logger.debug(f"Ignoring parentRef with unsupported group {group}")
        return None

    namespace = parent_ref.get("namespace") or route_namespace
    gateway = client.get(GATEWAY_GVK, namespace, parent_ref.get("name", ""))
    if gateway is None:
        raise NoGatewayFoundError(f"gateway {namespace}/{parent_ref.get('name', '')} not found")

    class_name = gateway.get("spec", {}).get("gatewayClassName", "")
    cache_key = make_cache_key(GATEWAY_CLASS_GVK.kind, "", class_name)
    gateway_class = get_cached_object(cache_key)
    if gateway_class is None:
        gateway_class = client.get_cluster_scoped(GATEWAY_CLASS_GVK, class_name)
        if gateway_class is None:
            raise NoGatewayClassFoundError(f"gatewayclass {class_name} not found")
        set_cached_object(cache_key, gateway_class)

    if gateway_class.get("spec", {}).get("controllerName") != controller_name:
        raise NoGatewayControllerError(f"gatewayclass {class_name} is not controlled by {controller_name}")
    return gateway


def _listener_programmed_status(gateway: dict[str, Any], listener_name: str) -> str | None:
    for listener_status in gateway.get("status", {}).get("listeners") or []:
        if listener_status.get("name") != listener_name:
            continue
        cond = find_condition(listener_status.get("conditions"), COND_PROGRAMMED)
        if cond is not None:
            return cond.get("status")
    return None


def filter_matching_listeners(
    gateway: dict[str, Any],
    parent_ref: dict[str, Any],
    listeners: list[dict[str, Any]],
) -> tuple[list[dict[str, Any]], dict[str, Any] | None]:
    """Keep ready HTTP/HTTPS listeners matching the parentRef's sectionName and port.

    Returns:
        ``(listeners, None)`` on a match, otherwise ``([], NoMatchingParent condition)``
    """
    matching = []
    matched_not_ready = False
    section_name = parent_ref.get("sectionName")
    port = parent_ref.get("port")

    for listener in listeners:
        if section_name is not None and section_name != listener.get("name"):
            continue
        if port is not None and port != listener.get("port"):
            continue
        if listener.get("protocol") not in (PROTOCOL_HTTP, PROTOCOL_HTTPS):
            continue
        tls = listener.get("tls")
        if tls is not None and tls.get("mode", TLS_MODE_TERMINATE) != TLS_MODE_TERMINATE:
            continue

        status = _listener_programmed_status(gateway, listener.get("name", ""))
        if status == STATUS_TRUE:
            matching.append(listener)
        elif status is not None:
            logger.debug(f"Listener {listener.get('name')} matches but is not programmed")
            matched_not_ready = True

    if matching:
        return matching, None

    message = MESSAGE_LISTENER_NOT_READY if matched_not_ready else REASON_NO_MATCHING_PARENT
    return [], new_condition(COND_ACCEPTED, STATUS_FALSE, REASON_NO_MATCHING_PARENT, message)


def filter_listeners_by_allowed_routes(
    gateway: dict[str, Any],
    parent_ref: dict[str, Any],
    listeners: list[dict[str, Any]],
    route_group_kind: dict[str, str],
    route_namespace: dict[str, Any],
) -> tuple[list[dict[str, Any]], dict[str, Any] | None]:
    """Keep listeners whose allowedRoutes admit the route's kind and namespace.

    Raises:
        ValidationError: On an invalid namespace selector or unknown ``from`` value
    """
    matching = []
    namespace_name = route_namespace.get("metadata", {}).get("name", "")
    namespace_labels = route_namespace.get("metadata", {}).get("labels") or {}

    for listener in listeners:
        allowed = listener.get("allowedRoutes")
        if allowed is None:
            matching.append(listener)
            continue

        kinds = allowed.get("kinds") or []
        if kinds and not any(
            (entry.get("group") is None or entry.get("group") == route_group_kind["group"])
            and entry.get("kind") == route_group_kind["kind"]
            for entry in kinds
        ):
            continue

        namespaces = allowed.get("namespaces")
        if namespaces is None or namespaces.get("from") is None:
            matching.append(listener)
            continue

        policy = namespaces["from"]
        if policy == NAMESPACES_FROM_ALL:
            matching.append(listener)
        elif policy == NAMESPACES_FROM_SAME:
            ref_namespace = parent_ref.get("namespace")
            gateway_namespace = gateway.get("metadata", {}).get("namespace", "")
            if (ref_namespace is not None and ref_namespace == namespace_name) or (
                ref_namespace is None and gateway_namespace == namespace_name
            ):
                matching.append(listener)
        elif policy == NAMESPACES_FROM_SELECTOR:
            selector = namespaces.get("selector")
            if selector is None:
                continue
            try:
                if selector_matches(selector, namespace_labels):
                    matching.append(listener)
            except ValidationError as e:
                raise ValidationError(
                    f"invalid allowedRoutes.namespaces.selector on listener {listener.get('name')} "
                    f"of gateway {object_key(gateway)}: {e}"
                ) from e
        else:
            raise ValidationError(
                f"unknown value for allowedRoutes.namespaces.from: {policy} for listener "
                f"{listener.get('name')} of gateway {object_key(gateway)}"
            )

    if matching:
        return matching, None
    return [], new_condition(COND_ACCEPTED, STATUS_FALSE, REASON_NOT_ALLOWED_BY_LISTENERS, MESSAGE_NOT_ALLOWED)


def filter_listeners_by_hostnames(
    listeners: list[dict[str, Any]],
    hostnames: list[str],
) -> tuple[list[dict[str, Any]], dict[str, Any] | None]:
    """Keep listeners with no hostname or one that intersects a route hostname."""
    matching = []
    for listener in listeners:
        listener_hostname = listener.get("hostname") or ""
        if not listener_hostname:
            matching.append(listener)
            continue
        if any(hostname_intersection(listener_hostname, hostname) for hostname in hostnames):
            matching.append(listener)

    if matching:
        return matching, None
    return [], new_condition(
        COND_ACCEPTED, STATUS_FALSE, REASON_NO_MATCHING_LISTENER_HOSTNAME, MESSAGE_NO_HOSTNAME
    )


def build_accepted_condition(
    client: Any,
    gateway: dict[str, Any],
    route: dict[str, Any],
    parent_ref: dict[str, Any],
) -> dict[str, Any]:
    """Run the listener, allowedRoutes and hostname filters in turn.

    Returns:
        The first failing Accepted=False condition, or Accepted=True

    Raises:
        OperatorError: If the route's namespace cannot be read
        ValidationError: Propagated from the allowedRoutes filter
    """
    listeners, cond = filter_matching_listeners(gateway, parent_ref, gateway.get("spec", {}).get("listeners") or [])
    if cond is not None:
        return set_condition_meta(cond, route)

    route_namespace_name = route.get("metadata", {}).get("namespace", "")
    route_namespace = client.get_namespace(route_namespace_name)
    if route_namespace is None:
        raise OperatorError(
            f"failed to get namespace {route_namespace_name} for route {object_key(route)} "
            f"while building accepted condition for gateway {object_key(gateway)}"
        )

    listeners, cond = filter_listeners_by_allowed_routes(
        gateway, parent_ref, listeners, get_route_group_kind(route), route_namespace
    )
    if cond is not None:
        return set_condition_meta(cond, route)

    _, cond = filter_listeners_by_hostnames(listeners, route.get("spec", {}).get("hostnames") or [])
    if cond is not None:
        return set_condition_meta(cond, route)

    return set_condition_meta(new_condition(COND_ACCEPTED, STATUS_TRUE, REASON_ACCEPTED, MESSAGE_ACCEPTED), route)


def build_programmed_conditions(
    client: Any,
    route: dict[str, Any],
    parent_ref: dict[str, Any],
    expected_gvks: Iterable[GroupVersionKind],
) -> list[dict[str, Any]]:
    """One ``<Kind>Programmed`` condition per generated kind, most severe wins.

    Only objects generated for ``parent_ref`` count, so each parent is judged
    on its own resources.

    Raises:
        OperatorError: If listing a kind fails
    """
    namespace = route.get("metadata", {}).get("namespace", "")
    selector = label_selector_for_owned_resources(route)
    conditions = []
    for gvk in expected_gvks:
        try:
            items = client.list(gvk, namespace=namespace, label_selector=selector)
        except ApiException as e:
            raise OperatorError(f"unable to list objects with gvk {gvk} in namespace {namespace}: {e}") from e
        for item in items:
            if not is_generated_for_parent(item, route, parent_ref):
                continue
            cond = get_programmed_condition_for_gvk(gvk, is_programmed(item))
            if cond:
                conditions.append(set_condition_meta(cond, route))
    return deduplicate_conditions_by_type(conditions)


def _parents(route: dict[str, Any]) -> list[dict[str, Any]]:
    status = route.setdefault("status", {})
    if status.get("parents") is None:
        status["parents"] = []
    return status["parents"]


def find_parent_status(route: dict[str, Any], parent_ref: dict[str, Any], controller_name: str) -> dict[str, Any] | None:
    for parent_status in route.get("status", {}).get("parents") or []:
        if parent_status.get("controllerName") == controller_name and is_parent_ref_equal(
            parent_status.get("parentRef", {}), parent_ref
        ):
            return parent_status
    return None


def set_status_conditions(
    route: dict[str, Any],
    parent_ref: dict[str, Any],
    controller_name: str,
    conditions: Iterable[dict[str, Any]],
) -> bool:
    """Merge conditions into this controller's status entry for a parentRef.

    The entry is created when missing. Existing conditions are rewritten only
    when they differ, ignoring lastTransitionTime.

    Returns:
        True if the route status changed
    """
    conditions = [dict(cond) for cond in conditions if cond]
    parent_status = find_parent_status(route, parent_ref, controller_name)
    if parent_status is None:
        for cond in conditions:
            cond.setdefault("lastTransitionTime", _now())
        _parents(route).append({
            "parentRef": dict(parent_ref),
            "controllerName": controller_name,
            "conditions": conditions,
        })
        return True

    updated = False
    existing_conditions = parent_status.setdefault("conditions", [])
    for cond in conditions:
        existing = find_condition(existing_conditions, cond.get("type", ""))
        if existing is None:
            cond["lastTransitionTime"] = _now()
            existing_conditions.append(cond)
            updated = True
        elif not is_condition_equal(existing, cond):
            existing.update({
                "status": cond.get("status"),
                "reason": cond.get("reason"),
                "message": cond.get("message"),
                "observedGeneration": cond.get("observedGeneration"),
                "lastTransitionTime": _now(),
            })
            updated = True
    return updated


def remove_stale_conditions(
    route: dict[str, Any],
    parent_ref: dict[str, Any],
    controller_name: str,
    produced_types: Iterable[str],
) -> bool:
    """Drop ``<Kind>Programmed`` conditions whose kind is no longer produced."""
    parent_status = find_parent_status(route, parent_ref, controller_name)
    if parent_status is None:
        return False
    produced = set(produced_types)
    managed = {f"{kind}{COND_PROGRAMMED}" for kind in PROGRAMMED_CONDITION_KINDS}
    conditions = parent_status.get("conditions") or []
    kept = [cond for cond in conditions if cond.get("type") not in managed or cond.get("type") in produced]
    if len(kept) == len(conditions):
        return False
    parent_status["conditions"] = kept
    return True


def remove_condition(route: dict[str, Any], parent_ref: dict[str, Any], controller_name: str, cond_type: str) -> bool:
    """Drop one condition type from this controller's entry for a parentRef."""
    parent_status = find_parent_status(route, parent_ref, controller_name)
    if parent_status is None:
        return False
    conditions = parent_status.get("conditions") or []
    kept = [cond for cond in conditions if cond.get("type") != cond_type]
    if len(kept) == len(conditions):
        return False
    parent_status["conditions"] = kept
    return True


def cleanup_orphaned_parent_status(route: dict[str, Any], controller_name: str) -> bool:
    """Remove this controller's entries whose parentRef left the route spec."""
    parents = route.get("status", {}).get("parents") or []
    if not parents:
        return False
    current = {parent_ref_key(ref) for ref in route.get("spec", {}).get("parentRefs") or []}
    kept = []
    for parent_status in parents:
        if parent_status.get("controllerName") != controller_name:
            kept.append(parent_status)
        elif parent_ref_key(parent_status.get("parentRef", {})) in current:
            kept.append(parent_status)
        else:
            logger.debug(f"Removing orphaned parent status {parent_status.get('parentRef')}")
    if len(kept) == len(parents):
        return False
    route["status"]["parents"] = kept
    return True


def remove_status_for_parent_ref(route: dict[str, Any], parent_ref: dict[str, Any], controller_name: str) -> bool:
    """Remove this controller's entry for one parentRef."""
    parents = route.get("status", {}).get("parents") or []
    kept = [
        parent_status
        for parent_status in parents
        if not (
            parent_status.get("controllerName") == controller_name
            and is_parent_ref_equal(parent_status.get("parentRef", {}), parent_ref)
        )
    ]
    if len(kept) == len(parents):
        return False
    route["status"]["parents"] = kept
    return True


def patch_route_status(client: Any, route: dict[str, Any]) -> None:
    """Write ``route["status"]`` guarded by the resourceVersion it was read at.

    Raises:
        ConflictError: The route changed since it was read
    """
    gvk = GroupVersionKind.from_object(route)
    metadata = route.get("metadata", {})
    try:
        client.patch_status(
            gvk,
            metadata.get("namespace", ""),
            metadata.get("name", ""),
            route.get("status", {}),
            resource_version=metadata.get("resourceVersion"),
        )
    except ApiException as e:
        if is_conflict(e):
            raise ConflictError(gvk, metadata.get("namespace", ""), metadata.get("name", ""), e) from e
        raise

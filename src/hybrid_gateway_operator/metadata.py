"""Labels and annotations stamped on generated resources."""

from __future__ import annotations

import logging
from typing import Any

from .constants import (
    ANNOTATION_HYBRID_GATEWAYS,
    ANNOTATION_HYBRID_ROUTE,
    LABEL_MANAGED_BY,
    LABEL_MANAGED_BY_NAME,
    LABEL_MANAGED_BY_NAMESPACE,
    MANAGED_BY_HTTP_ROUTE,
)
from .utils.objects import format_label_selector, namespaced_name, object_key

logger = logging.getLogger(__name__)

ANNOTATION_STRIP_PATH = "konghq.com/strip-path"


def build_labels(owner: dict[str, Any], managed_by: str = MANAGED_BY_HTTP_ROUTE) -> dict[str, str]:
    """Ownership labels for resources generated from ``owner``.

    Args:
        owner: Root object the resources are generated from
        managed_by: Value of the managed-by label (the owner's controller)

    Returns:
        Label dict
    """
    metadata = owner.get("metadata", {})
    return {
        LABEL_MANAGED_BY: managed_by,
        LABEL_MANAGED_BY_NAME: metadata.get("name", ""),
        LABEL_MANAGED_BY_NAMESPACE: metadata.get("namespace", ""),
    }


def label_selector_for_owned_resources(owner: dict[str, Any], managed_by: str = MANAGED_BY_HTTP_ROUTE) -> str:
    """Label selector string matching everything ``build_labels`` stamps."""
    return format_label_selector(build_labels(owner, managed_by))


def build_annotations(route: dict[str, Any], parent_ref: dict[str, Any]) -> dict[str, str]:
    """Annotations linking a generated resource to its route and gateway.

    The gateway namespace defaults to the route's namespace when the
    parentRef does not set one.
    """
    return {
        ANNOTATION_HYBRID_ROUTE: object_key(route),
        ANNOTATION_HYBRID_GATEWAYS: gateway_key_for_parent_ref(route, parent_ref),
    }


def gateway_key_for_parent_ref(route: dict[str, Any], parent_ref: dict[str, Any]) -> str:
    """Gateway ``namespace/name`` a parentRef points at, defaulting to the route namespace."""
    route_namespace = route.get("metadata", {}).get("namespace", "")
    return namespaced_name(parent_ref.get("namespace") or route_namespace, parent_ref.get("name", ""))


def is_generated_for_parent(obj: dict[str, Any], route: dict[str, Any], parent_ref: dict[str, Any]) -> bool:
    """Whether the hybrid-gateways annotation of ``obj`` names the parentRef's gateway."""
    annotations = obj.get("metadata", {}).get("annotations") or {}
    gateways = split_annotation_list(annotations.get(ANNOTATION_HYBRID_GATEWAYS))
    return gateway_key_for_parent_ref(route, parent_ref) in gateways


def extract_strip_path(annotations: dict[str, str] | None) -> bool:
    """Read ``konghq.com/strip-path``; missing or invalid values mean True."""
    value = (annotations or {}).get(ANNOTATION_STRIP_PATH, "").strip().lower()
    if value in ("false", "0", "f"):
        return False
    return True


def split_annotation_list(value: str | None) -> list[str]:
    """Split a comma-separated annotation value, dropping blanks."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class AnnotationManager:
    """Tracks which routes share a generated object through the hybrid-route annotation.

    The annotation holds comma-separated ``namespace/name`` route keys in
    insertion order.
    """

    def __init__(self, annotation: str = ANNOTATION_HYBRID_ROUTE):
        self.annotation = annotation

    def remove_route(self, obj: dict[str, Any], route: dict[str, Any]) -> bool:
        """Drop the route's key; the annotation is deleted when it empties."""
        route_key = object_key(route)
        annotations = obj.get("metadata", {}).get("annotations") or {}
        routes = split_annotation_list(annotations.get(self.annotation))
        if route_key not in routes:
            return False
        remaining = [key for key in routes if key != route_key]
        if remaining:
            annotations[self.annotation] = ",".join(remaining)
        else:
            del annotations[self.annotation]
        logger.debug(f"Removed route {route_key} from {object_key(obj)}")
        return True

    def contains_route(self, obj: dict[str, Any], route: dict[str, Any]) -> bool:
        annotations = obj.get("metadata", {}).get("annotations") or {}
        return object_key(route) in split_annotation_list(annotations.get(self.annotation))

    def get_routes(self, obj: dict[str, Any]) -> list[str]:
        annotations = obj.get("metadata", {}).get("annotations") or {}
        return split_annotation_list(annotations.get(self.annotation))

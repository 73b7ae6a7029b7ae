"""HTTPRoute to Kong resources translation."""

from __future__ import annotations

import logging
from typing import Any

from ..constants import KIND_KONG_SERVICE, KONG_CONFIGURATION_GROUP
from ..gvk import (
    HTTP_ROUTE_GVK,
    KONG_PLUGIN_BINDING_GVK,
    KONG_PLUGIN_GVK,
    KONG_ROUTE_GVK,
    KONG_SERVICE_GVK,
    KONG_TARGET_GVK,
    KONG_UPSTREAM_GVK,
    GroupVersionKind,
)
from ..metadata import build_annotations, build_labels, extract_strip_path
from ..route.hostname import hostname_intersection
from ..route.httproute import HTTPRouteStatusUpdater
from ..route.refs import backend_ref_namespace, build_resolved_refs_condition, is_backend_ref_group_kind_supported
from ..route.status import (
    build_accepted_condition,
    build_programmed_conditions,
    cleanup_orphaned_parent_status,
    get_supported_gateway_for_parent_ref,
    patch_route_status,
    remove_stale_conditions,
    remove_status_for_parent_ref,
    set_status_conditions,
)
from ..utils.errors import OperatorError, UnsupportedParentRefError, ValidationError
from ..utils.objects import object_key
from .base import APIConverter
from .plugins import FILTER_RESPONSE_HEADER_MODIFIER, rule_uses_capture_group, translate_filter

logger = logging.getLogger(__name__)

KONG_PATH_REGEX_PREFIX = "~"
KONG_HEADER_REGEX_PREFIX = "~*"
CLUSTER_DOMAIN = "svc.cluster.local"


def generate_kong_route_paths(path_match: dict[str, Any], set_capture_group: bool = False) -> list[str]:
    """Translate a Gateway API path match into Kong route paths.

    Args:
        path_match: ``{type, value}`` path match
        set_capture_group: Capture the remainder of a prefix for URL rewrites

    Returns:
        Kong paths, regex paths prefixed with ``~``
    """
    match_type = path_match.get("type") or "PathPrefix"
    value = path_match.get("value")
    if value is None:
        return []

    if match_type == "Exact":
        return [f"{KONG_PATH_REGEX_PREFIX}{value}$"]

    if match_type == "PathPrefix":
        if value == "/" and not set_capture_group:
            return ["/"]
        paths = [f"{KONG_PATH_REGEX_PREFIX}{value}$"]
        if set_capture_group:
            if value == "/":
                return paths + [f"{KONG_PATH_REGEX_PREFIX}/(.*)"]
            return paths + [f"{KONG_PATH_REGEX_PREFIX}{value}(/.*)"]
        if not value.endswith("/"):
            value = f"{value}/"
        return paths + [value]

    if match_type == "RegularExpression":
        return [f"{KONG_PATH_REGEX_PREFIX}{value}"]
    return []


def build_route_match_spec(match: dict[str, Any], set_capture_group: bool = False) -> dict[str, Any]:
    """Kong route ``paths``, ``methods`` and ``headers`` for one HTTPRoute match."""
    spec: dict[str, Any] = {}
    if match.get("path"):
        paths = generate_kong_route_paths(match["path"], set_capture_group)
        if paths:
            spec["paths"] = paths
    if match.get("method"):
        spec["methods"] = [match["method"]]
    headers: dict[str, list[str]] = {}
    for header in match.get("headers") or []:
        value = header.get("value", "")
        if header.get("type") == "RegularExpression":
            value = f"{KONG_HEADER_REGEX_PREFIX}{value}"
        headers.setdefault(header.get("name", ""), []).append(value)
    if headers:
        spec["headers"] = headers
    return spec


class HTTPRouteConverter(APIConverter):
    """Generates KongUpstream, KongService, KongTarget, KongRoute, KongPlugin and
    KongPluginBinding objects for every rule of an HTTPRoute, once per Gateway
    parent served by this controller."""

    root_gvk = HTTP_ROUTE_GVK

    expected_gvks = [
        KONG_ROUTE_GVK,
        KONG_SERVICE_GVK,
        KONG_UPSTREAM_GVK,
        KONG_TARGET_GVK,
        KONG_PLUGIN_GVK,
        KONG_PLUGIN_BINDING_GVK,
    ]

    def get_expected_gvks(self) -> list[GroupVersionKind]:
        return list(self.expected_gvks)

    @property
    def namespace(self) -> str:
        return self.root.get("metadata", {}).get("namespace", "")

    @property
    def name(self) -> str:
        return self.root.get("metadata", {}).get("name", "")

    def _supported_gateway(self, parent_ref: dict[str, Any]) -> dict[str, Any] | None:
        try:
            return get_supported_gateway_for_parent_ref(
                self.client, parent_ref, self.namespace, self.config.controller_name
            )
        except UnsupportedParentRefError as e:
            logger.debug(f"Skipping parentRef {parent_ref.get('name')} of {object_key(self.root)}: {e}")
            return None

    def _hostnames_for_parent(self, gateway: dict[str, Any], parent_ref: dict[str, Any]) -> list[str] | None:
        """Hostnames the generated routes accept through this parent.

        Returns:
            The hostname list (empty means any hostname), or None when no
            listener hostname intersects the route's hostnames
        """
        route_hostnames = self.root.get("spec", {}).get("hostnames") or []
        section_name = parent_ref.get("sectionName")
        port = parent_ref.get("port")
        hosts: list[str] = []
        for listener in gateway.get("spec", {}).get("listeners") or []:
            if section_name is not None and listener.get("name") != section_name:
                continue
            if port is not None and listener.get("port") != port:
                continue
            listener_hostname = listener.get("hostname") or ""
            if not listener_hostname:
                return list(route_hostnames)
            for route_hostname in route_hostnames or [""]:
                intersection = hostname_intersection(listener_hostname, route_hostname)
                if intersection and intersection not in hosts:
                    hosts.append(intersection)
        return hosts or None

    def _metadata(self, name: str, parent_ref: dict[str, Any]) -> dict[str, Any]:
        root_meta = self.root.get("metadata", {})
        metadata: dict[str, Any] = {
            "name": name,
            "namespace": self.namespace,
            "labels": build_labels(self.root, self.managed_by),
            "annotations": build_annotations(self.root, parent_ref),
        }
        if root_meta.get("uid"):
            metadata["ownerReferences"] = [{
                "apiVersion": self.root.get("apiVersion"),
                "kind": self.root.get("kind"),
                "name": self.name,
                "uid": root_meta["uid"],
                "controller": True,
                "blockOwnerDeletion": True,
            }]
        return metadata

    def _object(self, gvk: GroupVersionKind, name: str, parent_ref: dict[str, Any], **fields: Any) -> dict[str, Any]:
        obj = {"apiVersion": gvk.api_version, "kind": gvk.kind, "metadata": self._metadata(name, parent_ref)}
        obj.update(fields)
        return obj

    def translate(self) -> None:
        """Fill the output store; parents not served by this controller emit nothing."""
        self.output_store = []
        strip_path = extract_strip_path(self.root.get("metadata", {}).get("annotations"))

        for parent_idx, parent_ref in enumerate(self.root.get("spec", {}).get("parentRefs") or []):
            gateway = self._supported_gateway(parent_ref)
            if gateway is None:
                continue
            hostnames = self._hostnames_for_parent(gateway, parent_ref)
            if hostnames is None:
                logger.debug(f"No listener hostname of {object_key(gateway)} matches {object_key(self.root)}")
                continue

            for rule_idx, rule in enumerate(self.root.get("spec", {}).get("rules") or []):
                self._translate_rule(f"{self.name}-{parent_idx}-{rule_idx}", rule, parent_ref, hostnames, strip_path)

        logger.debug(f"Translated {object_key(self.root)} into {len(self.output_store)} object(s)")

    def _translate_rule(
        self,
        base_name: str,
        rule: dict[str, Any],
        parent_ref: dict[str, Any],
        hostnames: list[str],
        strip_path: bool,
    ) -> None:
        self.output_store.append(self._object(KONG_UPSTREAM_GVK, base_name, parent_ref, spec={"name": base_name}))
        self.output_store.append(
            self._object(KONG_SERVICE_GVK, base_name, parent_ref, spec={"name": base_name, "host": base_name})
        )

        for backend_idx, backend_ref in enumerate(rule.get("backendRefs") or []):
            if not is_backend_ref_group_kind_supported(backend_ref.get("group"), backend_ref.get("kind")):
                continue
            if backend_ref.get("port") is None:
                continue
            host = f"{backend_ref.get('name')}.{backend_ref_namespace(self.root, backend_ref)}.{CLUSTER_DOMAIN}"
            self.output_store.append(self._object(
                KONG_TARGET_GVK,
                f"{base_name}-{backend_idx}",
                parent_ref,
                spec={
                    "upstreamRef": {"name": base_name},
                    "target": f"{host}:{backend_ref['port']}",
                    "weight": backend_ref.get("weight", 1),
                },
            ))

        set_capture_group = rule_uses_capture_group(rule)
        route_names = []
        for match_idx, match in enumerate(rule.get("matches") or [{"path": {"type": "PathPrefix", "value": "/"}}]):
            route_name = f"{base_name}-{match_idx}"
            route_names.append(route_name)
            spec: dict[str, Any] = {
                "name": route_name,
                "strip_path": strip_path,
                "serviceRef": {"type": "namespacedRef", "namespacedRef": {"name": base_name}},
            }
            if hostnames:
                spec["hosts"] = list(hostnames)
            spec.update(build_route_match_spec(match, set_capture_group))
            self.output_store.append(self._object(KONG_ROUTE_GVK, route_name, parent_ref, spec=spec))

        for filter_idx, route_filter in enumerate(rule.get("filters") or []):
            try:
                plugin_name, plugin_config = translate_filter(rule, route_filter)
            except ValidationError as e:
                logger.warning(f"Skipping filter {filter_idx} of {object_key(self.root)}: {e}")
                continue
            kong_plugin_name = f"{base_name}-f{filter_idx}"
            self.output_store.append(self._object(
                KONG_PLUGIN_GVK, kong_plugin_name, parent_ref, plugin=plugin_name, config=plugin_config
            ))
            for route_name in route_names:
                if route_filter.get("type") == FILTER_RESPONSE_HEADER_MODIFIER:
                    target = {"serviceRef": {"group": KONG_CONFIGURATION_GROUP, "kind": KIND_KONG_SERVICE, "name": base_name}}
                else:
                    target = {"routeRef": {"group": KONG_CONFIGURATION_GROUP, "kind": KONG_ROUTE_GVK.kind, "name": route_name}}
                self.output_store.append(self._object(
                    KONG_PLUGIN_BINDING_GVK,
                    f"{route_name}-f{filter_idx}",
                    parent_ref,
                    spec={"pluginRef": {"name": kong_plugin_name}, "targets": target},
                ))

    def update_root_object_status(self) -> tuple[bool, bool]:
        """Compute Accepted, ResolvedRefs, per-kind Programmed and BackendsProgrammed.

        Parents whose Gateway is missing or belongs to another controller lose
        this controller's status entry. The route status is patched once, only
        when something changed.

        Returns:
            ``(updated, stop)``; ``stop`` is True when no parent is served here

        Raises:
            ConflictError: The route changed since it was read
            OperatorError: A parent could not be evaluated
        """
        controller_name = self.config.controller_name
        route_key = object_key(self.root)
        updated = False
        served: list[dict[str, Any]] = []

        for parent_ref in self.root.get("spec", {}).get("parentRefs") or []:
            try:
                gateway = get_supported_gateway_for_parent_ref(self.client, parent_ref, self.namespace, controller_name)
            except UnsupportedParentRefError as e:
                logger.debug(f"Removing status of unsupported parentRef {parent_ref.get('name')} on {route_key}: {e}")
                if remove_status_for_parent_ref(self.root, parent_ref, controller_name):
                    updated = True
                continue
            if gateway is None:
                continue
            served.append(parent_ref)

            try:
                accepted = build_accepted_condition(self.client, gateway, self.root, parent_ref)
                programmed = build_programmed_conditions(self.client, self.root, parent_ref, self.expected_gvks)
            except ValidationError:
                raise
            except OperatorError as e:
                raise OperatorError(f"failed to build status for parentRef {parent_ref.get('name')}: {e}") from e
            resolved_refs = build_resolved_refs_condition(self.client, self.root, self.config.enable_reference_grant)

            conditions = [accepted, resolved_refs, *programmed]
            if set_status_conditions(self.root, parent_ref, controller_name, conditions):
                updated = True
            if remove_stale_conditions(
                self.root, parent_ref, controller_name, [cond["type"] for cond in programmed]
            ):
                updated = True

        updater = HTTPRouteStatusUpdater(self.root, self.client, self.shared_status_map, controller_name)
        updater.compute_status(served)
        if updater.merge_conditions():
            updated = True

        if cleanup_orphaned_parent_status(self.root, controller_name):
            updated = True

        if updated:
            patch_route_status(self.client, self.root)
            logger.info(f"Updated status of HTTPRoute {route_key}")
        else:
            logger.debug(f"No status update required for HTTPRoute {route_key}")
        return updated, not served

    def update_shared_route_status(self, objs: list[dict[str, Any]]) -> None:
        """HTTPRoutes only read the shared map."""

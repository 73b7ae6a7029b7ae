"""BackendsProgrammed status for HTTPRoutes, computed from the shared status map."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from ..constants import (
    COND_BACKENDS_PROGRAMMED,
    HTTP_ROUTE_KEY,
    KIND_GATEWAY,
    REASON_BACKENDS_NOT_PROGRAMMED,
    REASON_BACKENDS_PROGRAMMED,
    STATUS_FALSE,
    STATUS_TRUE,
)
from ..utils.conditions import new_condition, set_condition_meta
from ..utils.objects import namespaced_name, object_key
from .refs import backend_ref_namespace, iter_backend_refs
from .shared_status import SharedRouteStatusMap, status_map_key
from .status import patch_route_status, remove_condition, set_status_conditions

logger = logging.getLogger(__name__)

MESSAGE_BACKENDS_PROGRAMMED = "All backends are programmed"
MESSAGE_BACKENDS_NOT_PROGRAMMED = "Not all backends are programmed"


class Result(str, Enum):
    """Outcome of enforcing a computed status."""

    UPDATED = "updated"
    NOOP = "noop"


class HTTPRouteStatusUpdater:
    """Computes and writes BackendsProgrammed for every Gateway parent of a route.

    A parent gets no condition while any of its backends has not been
    reported by the Service controller yet; absence means "unknown".
    A route without backends carries no BackendsProgrammed at all.
    """

    def __init__(
        self,
        route: dict[str, Any],
        client: Any,
        shared_status_map: SharedRouteStatusMap,
        controller_name: str,
    ):
        self.route = route
        self.client = client
        self.shared_status_map = shared_status_map
        self.controller_name = controller_name
        self.parent_programmed_conditions: dict[str, list[dict[str, Any]]] = {}
        self._parent_refs: dict[str, dict[str, Any]] = {}
        self._parents_without_backends: list[dict[str, Any]] = []

    def _backend_keys(self) -> list[str]:
        keys = []
        for backend_ref in iter_backend_refs(self.route):
            key = namespaced_name(backend_ref_namespace(self.route, backend_ref), backend_ref.get("name", ""))
            if key not in keys:
                keys.append(key)
        return keys

    def compute_status(self, parent_refs: list[dict[str, Any]] | None = None) -> None:
        """Fill ``parent_programmed_conditions`` keyed by gateway ``namespace/name``.

        Args:
            parent_refs: Restrict to these parentRefs (defaults to all of the route)
        """
        self.parent_programmed_conditions = {}
        self._parent_refs = {}
        self._parents_without_backends = []
        route_key = object_key(self.route)
        route_namespace = self.route.get("metadata", {}).get("namespace", "")
        backend_keys = self._backend_keys()

        if parent_refs is None:
            parent_refs = self.route.get("spec", {}).get("parentRefs") or []
        parent_refs = [ref for ref in parent_refs if ref.get("kind", KIND_GATEWAY) == KIND_GATEWAY]
        if not backend_keys:
            logger.debug(f"Route {route_key} has no backends, clearing BackendsProgrammed")
            self._parents_without_backends = parent_refs
            return

        for parent_ref in parent_refs:
            gateway_key = namespaced_name(parent_ref.get("namespace") or route_namespace, parent_ref.get("name", ""))
            key = status_map_key(HTTP_ROUTE_KEY, route_key, gateway_key)

            all_programmed = True
            initialized = True
            for service_key in backend_keys:
                count, service_initialized = self.shared_status_map.get_programmed_services(key, service_key)
                if not service_initialized:
                    initialized = False
                    break
                if count != 1:
                    all_programmed = False

            if not initialized:
                logger.debug(f"Backends of {key} not reported yet, leaving BackendsProgrammed unset")
                continue

            if all_programmed:
                cond = new_condition(
                    COND_BACKENDS_PROGRAMMED, STATUS_TRUE, REASON_BACKENDS_PROGRAMMED, MESSAGE_BACKENDS_PROGRAMMED
                )
            else:
                cond = new_condition(
                    COND_BACKENDS_PROGRAMMED,
                    STATUS_FALSE,
                    REASON_BACKENDS_NOT_PROGRAMMED,
                    MESSAGE_BACKENDS_NOT_PROGRAMMED,
                )
            self.parent_programmed_conditions[gateway_key] = [set_condition_meta(cond, self.route)]
            self._parent_refs[gateway_key] = parent_ref

    def merge_conditions(self) -> bool:
        """Merge the computed conditions into the in-memory route status.

        Returns:
            True if the status changed
        """
        updated = False
        for gateway_key, conditions in self.parent_programmed_conditions.items():
            parent_ref = self._parent_refs[gateway_key]
            if set_status_conditions(self.route, parent_ref, self.controller_name, conditions):
                updated = True
        for parent_ref in self._parents_without_backends:
            if remove_condition(self.route, parent_ref, self.controller_name, COND_BACKENDS_PROGRAMMED):
                updated = True
        return updated

    def enforce_status(self) -> Result:
        """Merge the computed conditions and patch the route status if it changed.

        Raises:
            ConflictError: The route changed since it was read
        """
        if not self.merge_conditions():
            return Result.NOOP
        patch_route_status(self.client, self.route)
        logger.info(f"Updated BackendsProgrammed status of HTTPRoute {object_key(self.route)}")
        return Result.UPDATED

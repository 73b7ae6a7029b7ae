"""Top-level reconcile loop: status, translation, enforcement and garbage collection."""

from __future__ import annotations

import logging
from typing import Any, NamedTuple

from .config import OperatorConfig
from .converter import new_converter
from .gvk import SERVICE_GVK, GroupVersionKind
from .route.shared_status import SharedRouteStatusMap
from .route.status import get_supported_gateway_for_parent_ref
from .state import clean_orphaned_resources, enforce_state
from .tracing import add_span_attribute, trace_span
from .utils.errors import ConflictError, UnsupportedParentRefError
from .utils.objects import namespaced_name, object_key

logger = logging.getLogger(__name__)


class ReconcileResult(NamedTuple):
    """Outcome of one reconcile of a root object."""

    requeue: bool = False
    stop: bool = False
    status_updated: bool = False
    applied: int = 0
    deleted: int = 0
    error: Exception | None = None


def should_process_object(client: Any, route: dict[str, Any], controller_name: str) -> bool:
    """Return True if a route is, or was, attached to a Gateway this controller serves.

    A route with a parent status entry written by this controller still needs
    processing after it moved away, so its stale entries and generated
    objects get cleaned up.
    """
    for parent in route.get("status", {}).get("parents") or []:
        if parent.get("controllerName") == controller_name:
            return True

    route_namespace = route.get("metadata", {}).get("namespace", "")
    for parent_ref in route.get("spec", {}).get("parentRefs") or []:
        try:
            if get_supported_gateway_for_parent_ref(client, parent_ref, route_namespace, controller_name):
                return True
        except UnsupportedParentRefError:
            continue
    return False


class HybridGatewayReconciler:
    """Runs the reconcile pipeline for one root kind.

    Stages run strictly in order: status update, translation, state
    enforcement and garbage collection, then the converter publishes what
    the surviving generated objects report into the shared status map.

    Args:
        client: Cluster client
        config: Operator configuration
        shared_status_map: Map shared between route and backend controllers
        root_gvk: Kind of root object reconciled
    """

    def __init__(
        self,
        client: Any,
        config: OperatorConfig,
        shared_status_map: SharedRouteStatusMap,
        root_gvk: GroupVersionKind,
    ):
        self.client = client
        self.config = config
        self.shared_status_map = shared_status_map
        self.root_gvk = root_gvk

    def reconcile(self, namespace: str, name: str) -> ReconcileResult:
        """Reconcile one root object by namespace and name.

        Returns:
            ReconcileResult; ``requeue`` is set on any 409 conflict

        Raises:
            ValidationError: Malformed input aborted the reconcile
            OperatorError: Garbage collection could not list a kind
            ApiException: Any non-conflict API failure
        """
        key = namespaced_name(namespace, name)
        kind = self.root_gvk.kind
        with trace_span("reconcile", kind=kind, attributes={"root.key": key}):
            obj = self.client.get(self.root_gvk, namespace, name)
            if obj is None:
                logger.debug(f"{kind} {key} not found, nothing to reconcile")
                return ReconcileResult()
            if obj.get("metadata", {}).get("deletionTimestamp"):
                logger.debug(f"{kind} {key} is being deleted")
                self.finalize(obj)
                return ReconcileResult(stop=True)
            return self._reconcile_object(obj)

    def _reconcile_object(self, obj: dict[str, Any]) -> ReconcileResult:
        kind = self.root_gvk.kind
        key = object_key(obj)
        converter = new_converter(obj, self.client, self.config, self.shared_status_map)

        try:
            status_updated, stop = converter.update_root_object_status()
        except ConflictError as e:
            logger.info(f"Conflict while updating status of {kind} {key}, requeueing: {e}")
            return ReconcileResult(requeue=True, error=e)
        add_span_attribute("status.updated", status_updated)

        if stop:
            # No served parent left: anything generated earlier is stale.
            logger.debug(f"{kind} {key} is not served by {self.config.controller_name}")
            clean = clean_orphaned_resources(self.client, converter, self.config)
            return ReconcileResult(
                requeue=clean.requeue,
                stop=True,
                status_updated=status_updated,
                deleted=clean.deleted,
            )

        with trace_span("translate", kind=kind, attributes={"root.key": key}):
            converter.translate()
        logger.debug(f"Translated {kind} {key} into {len(converter.get_output_store())} object(s)")

        enforced = enforce_state(self.client, converter, self.config)
        if enforced.requeue or enforced.stop:
            return ReconcileResult(
                requeue=enforced.requeue,
                stop=enforced.stop,
                status_updated=status_updated,
                applied=enforced.applied,
                error=enforced.error,
            )

        clean = clean_orphaned_resources(self.client, converter, self.config)
        converter.update_shared_route_status(clean.kept)

        return ReconcileResult(
            requeue=clean.requeue,
            status_updated=status_updated,
            applied=enforced.applied,
            deleted=clean.deleted,
        )

    def finalize(self, obj: dict[str, Any]) -> list[str]:
        """Release process state held for a root object that is going away.

        Generated objects carry owner references and are collected by the
        API server. A deleted Service is forgotten in the shared status map.

        Returns:
            Shared status keys the object was removed from
        """
        if self.root_gvk != SERVICE_GVK:
            return []
        service_key = object_key(obj)
        touched = self.shared_status_map.remove_service(service_key)
        if touched:
            logger.info(f"Removed Service {service_key} from {len(touched)} shared status entr(ies)")
        return touched


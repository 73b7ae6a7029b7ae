"""Status-only reconciliation driven by the shared status map."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from .. import metrics
from ..config import OperatorConfig
from ..gvk import HTTP_ROUTE_GVK, GroupVersionKind
from ..tracing import trace_span
from ..utils.objects import namespaced_name
from .httproute import HTTPRouteStatusUpdater, Result
from .shared_status import SharedRouteStatusMap

logger = logging.getLogger(__name__)

UpdaterFactory = Callable[[dict[str, Any], Any, SharedRouteStatusMap, str], Any]

STATUS_UPDATERS: dict[str, UpdaterFactory] = {
    HTTP_ROUTE_GVK.kind: HTTPRouteStatusUpdater,
}


class RouteStatusReconciler:
    """Recomputes the shared-map driven status of one route kind.

    Args:
        client: Cluster client
        config: Operator configuration
        shared_status_map: Map written by the backend controllers
        route_gvk: Kind of route this reconciler serves
    """

    def __init__(
        self,
        client: Any,
        config: OperatorConfig,
        shared_status_map: SharedRouteStatusMap,
        route_gvk: GroupVersionKind = HTTP_ROUTE_GVK,
    ):
        if route_gvk.kind not in STATUS_UPDATERS:
            raise ValueError(f"no status updater registered for {route_gvk}")
        self.client = client
        self.config = config
        self.shared_status_map = shared_status_map
        self.route_gvk = route_gvk

    def reconcile(self, namespace: str, name: str) -> Result:
        """Fetch the route and patch its status when the computed one differs.

        Returns:
            Result.UPDATED if a patch was issued, Result.NOOP otherwise

        Raises:
            ConflictError: The route changed while being reconciled
        """
        start_time = time.time()
        key = namespaced_name(namespace, name)
        with trace_span("route_status.reconcile", kind=self.route_gvk.kind, attributes={"route.key": key}):
            route = self.client.get(self.route_gvk, namespace, name)
            if route is None:
                logger.debug(f"{self.route_gvk.kind} {key} not found, nothing to do")
                return Result.NOOP
            if route.get("metadata", {}).get("deletionTimestamp"):
                logger.debug(f"{self.route_gvk.kind} {key} is being deleted, skipping status")
                return Result.NOOP

            updater = STATUS_UPDATERS[self.route_gvk.kind](
                route, self.client, self.shared_status_map, self.config.controller_name
            )
            updater.compute_status()
            try:
                result = updater.enforce_status()
            except Exception as e:
                metrics.status_updates_total.labels(kind=self.route_gvk.kind, result="failure").inc()
                logger.warning(f"Failed to enforce status of {self.route_gvk.kind} {key}: {e}")
                raise
            finally:
                metrics.reconcile_duration_seconds.labels(kind=f"{self.route_gvk.kind}Status").observe(
                    time.time() - start_time
                )

        metrics.status_updates_total.labels(kind=self.route_gvk.kind, result=result.value).inc()
        return result

"""Handlers for HTTPRoute resources."""

from __future__ import annotations

from typing import Any

import kopf

from .. import metrics
from ..config import get_config
from ..constants import GATEWAY_API_GROUP_VERSION, KIND_HTTP_ROUTE
from ..gvk import HTTP_ROUTE_GVK
from ..reconciler import HybridGatewayReconciler, should_process_object
from ..route.reconciler import RouteStatusReconciler
from ..utils.errors import ConflictError
from .base import BaseHandler
from .shared import get_runtime


class HTTPRouteHandler(BaseHandler):
    """Handler for HTTPRoute resources."""

    def __init__(self):
        super().__init__(KIND_HTTP_ROUTE)

    def reconcile(self, body: dict[str, Any]) -> None:
        """Run the full pipeline for a route served by this controller."""
        runtime = get_runtime()
        meta = body.get("metadata", {})
        if not should_process_object(runtime.client, body, runtime.config.controller_name):
            self.logger.debug(f"HTTPRoute {meta.get('namespace')}/{meta.get('name')} is not ours, skipping")
            return

        reconciler = HybridGatewayReconciler(
            runtime.client, runtime.config, runtime.shared_status_map, HTTP_ROUTE_GVK
        )
        result = reconciler.reconcile(meta.get("namespace", ""), meta.get("name", ""))
        self.handle_result(body, result, runtime.config.requeue_delay_seconds)

    def resync_status(self, body: dict[str, Any]) -> None:
        """Refresh BackendsProgrammed from the shared status map.

        Raises:
            kopf.TemporaryError: The status patch conflicted
        """
        runtime = get_runtime()
        meta = body.get("metadata", {})
        if not should_process_object(runtime.client, body, runtime.config.controller_name):
            return

        reconciler = RouteStatusReconciler(runtime.client, runtime.config, runtime.shared_status_map)
        try:
            result = reconciler.reconcile(meta.get("namespace", ""), meta.get("name", ""))
        except ConflictError as e:
            metrics.status_updates_total.labels(kind=self.kind, result="conflict").inc()
            self.requeue(meta, runtime.config.requeue_delay_seconds, e)
            return
        self.log_info(meta, "Status resynced", event="status_resync", reason="StatusResync", result=result.value)


_handler = HTTPRouteHandler()


@kopf.on.create(GATEWAY_API_GROUP_VERSION, KIND_HTTP_ROUTE)
@kopf.on.update(GATEWAY_API_GROUP_VERSION, KIND_HTTP_ROUTE)
@kopf.on.resume(GATEWAY_API_GROUP_VERSION, KIND_HTTP_ROUTE)
def handle_httproute(body: kopf.Body, **kwargs: Any) -> None:
    """Handle HTTPRoute reconciliation."""
    _handler.reconcile_with_metrics(
        body, lambda: _handler.reconcile(body), get_config().requeue_delay_seconds
    )


@kopf.timer(
    GATEWAY_API_GROUP_VERSION,
    KIND_HTTP_ROUTE,
    interval=get_config().status_resync_interval_seconds,
    idle=get_config().status_resync_interval_seconds,
)
def resync_httproute_status(body: kopf.Body, **kwargs: Any) -> None:
    """Periodically fold backend programming state into the route status."""
    _handler.resync_status(body)


@kopf.on.delete(GATEWAY_API_GROUP_VERSION, KIND_HTTP_ROUTE, optional=True)
def handle_httproute_delete(body: kopf.Body, **kwargs: Any) -> None:
    """Handle HTTPRoute deletion.

    Generated objects carry owner references to the route and are garbage
    collected by the API server.
    """
    meta = body.get("metadata", {})
    _handler.log_info(meta, "HTTPRoute deleted", event="deleted", reason="Deleted")

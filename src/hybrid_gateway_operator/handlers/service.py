"""Handlers for backend Services and the KongServices generated for them."""

from __future__ import annotations

from typing import Any, Iterable

import kopf

from ..config import get_config
from ..constants import (
    KIND_KONG_SERVICE,
    KIND_SERVICE,
    KONG_CONFIGURATION_GROUP,
    KONG_CONFIGURATION_VERSION,
    LABEL_MANAGED_BY,
    LABEL_MANAGED_BY_NAME,
    LABEL_MANAGED_BY_NAMESPACE,
    MANAGED_BY_SERVICE,
)
from ..gvk import HTTP_ROUTE_GVK, SERVICE_GVK
from ..reconciler import HybridGatewayReconciler
from ..route.reconciler import RouteStatusReconciler
from ..utils.objects import namespaced_name
from .base import BaseHandler
from .shared import Runtime, get_runtime


def routes_referencing_service(client: Any, namespace: str, name: str) -> list[str]:
    """Return ``namespace/name`` of every HTTPRoute with a backendRef to the Service."""
    keys = []
    for route in client.list(HTTP_ROUTE_GVK, namespace=namespace):
        route_meta = route.get("metadata", {})
        for rule in route.get("spec", {}).get("rules") or []:
            if any(
                ref.get("name") == name and ref.get("namespace") in (None, namespace)
                for ref in rule.get("backendRefs") or []
            ):
                keys.append(namespaced_name(route_meta.get("namespace", ""), route_meta.get("name", "")))
                break
    return keys


def route_keys_from_status_keys(status_keys: Iterable[str]) -> list[str]:
    """Extract the distinct ``namespace/name`` route parts of shared status keys."""
    routes = []
    for key in status_keys:
        parts = key.split("|")
        if len(parts) == 3 and parts[1] not in routes:
            routes.append(parts[1])
    return routes


class ServiceHandler(BaseHandler):
    """Handler for Service resources acting as route backends."""

    def __init__(self):
        super().__init__(KIND_SERVICE)

    def reconcile(self, body: dict[str, Any]) -> None:
        """Reconcile the Service's KongServices, then refresh the routes using it."""
        runtime = get_runtime()
        meta = body.get("metadata", {})
        namespace = meta.get("namespace", "")
        name = meta.get("name", "")

        reconciler = HybridGatewayReconciler(runtime.client, runtime.config, runtime.shared_status_map, SERVICE_GVK)
        result = reconciler.reconcile(namespace, name)
        self.handle_result(body, result, runtime.config.requeue_delay_seconds)
        self.refresh_routes(runtime, routes_referencing_service(runtime.client, namespace, name))

    def delete(self, body: dict[str, Any]) -> None:
        """Forget the Service in the shared status map and refresh affected routes."""
        runtime = get_runtime()
        meta = body.get("metadata", {})
        reconciler = HybridGatewayReconciler(runtime.client, runtime.config, runtime.shared_status_map, SERVICE_GVK)
        touched = reconciler.finalize(dict(body))
        self.log_info(meta, "Service deleted", event="deleted", reason="Deleted", status_entries=len(touched))
        self.refresh_routes(runtime, route_keys_from_status_keys(touched))

    def refresh_routes(self, runtime: Runtime, route_keys: Iterable[str]) -> None:
        """Recompute the shared-map driven status of each route.

        Raises:
            ConflictError: A route status patch conflicted
        """
        status_reconciler = RouteStatusReconciler(runtime.client, runtime.config, runtime.shared_status_map)
        for route_key in route_keys:
            namespace, _, name = route_key.partition("/")
            status_reconciler.reconcile(namespace, name)


_handler = ServiceHandler()


@kopf.on.create("", SERVICE_GVK.version, "services")
@kopf.on.update("", SERVICE_GVK.version, "services")
@kopf.on.resume("", SERVICE_GVK.version, "services")
def handle_service(body: kopf.Body, **kwargs: Any) -> None:
    """Handle Service reconciliation."""
    _handler.reconcile_with_metrics(body, lambda: _handler.reconcile(body), get_config().requeue_delay_seconds)


@kopf.on.delete("", SERVICE_GVK.version, "services", optional=True)
def handle_service_delete(body: kopf.Body, **kwargs: Any) -> None:
    """Handle Service deletion."""
    _handler.reconcile_with_metrics(body, lambda: _handler.delete(body), get_config().requeue_delay_seconds)


@kopf.on.event(
    f"{KONG_CONFIGURATION_GROUP}/{KONG_CONFIGURATION_VERSION}",
    KIND_KONG_SERVICE,
    labels={LABEL_MANAGED_BY: MANAGED_BY_SERVICE},
)
def handle_kong_service_event(event: kopf.RawEvent, body: kopf.Body, **kwargs: Any) -> None:
    """Re-reconcile the owning Service when one of its KongServices changes.

    Programmed conditions land on KongServices after the Service reconcile
    that created them; this is what carries them into the shared status map.
    """
    labels = body.get("metadata", {}).get("labels") or {}
    namespace = labels.get(LABEL_MANAGED_BY_NAMESPACE)
    name = labels.get(LABEL_MANAGED_BY_NAME)
    if not namespace or not name or event.get("type") == "DELETED":
        return

    runtime = get_runtime()
    service = runtime.client.get(SERVICE_GVK, namespace, name)
    if service is None:
        return
    try:
        _handler.reconcile_with_metrics(
            service, lambda: _handler.reconcile(service), runtime.config.requeue_delay_seconds
        )
    except kopf.TemporaryError as e:
        # Event handlers are not retried; the next KongService event or route resync catches up.
        _handler.log_warning(service.get("metadata", {}), f"Deferred Service reconcile: {e}", reason="Deferred")

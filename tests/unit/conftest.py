"""Shared fixtures: an in-memory cluster and builders for Gateway API objects."""

from __future__ import annotations

import copy
from typing import Any

import pytest
from kubernetes.client.exceptions import ApiException

from hybrid_gateway_operator.config import OperatorConfig
from hybrid_gateway_operator.constants import DEFAULT_CONTROLLER_NAME, DEFAULT_FIELD_MANAGER
from hybrid_gateway_operator.gvk import (
    GATEWAY_CLASS_GVK,
    GATEWAY_GVK,
    HTTP_ROUTE_GVK,
    NAMESPACE_GVK,
    SERVICE_GVK,
    GroupVersionKind,
)
from hybrid_gateway_operator.route.shared_status import SharedRouteStatusMap
from hybrid_gateway_operator.utils.cache import invalidate_cache


def fields_v1(value: dict[str, Any], top_level: bool = True) -> dict[str, Any]:
    """Describe every field of ``value`` the way the API server records applied fields."""
    fields: dict[str, Any] = {}
    for key, item in value.items():
        if top_level and key in ("apiVersion", "kind", "status"):
            continue
        if isinstance(item, dict) and item:
            sub_fields = fields_v1(item, top_level=False)
            if top_level and key == "metadata":
                sub_fields.pop("f:name", None)
                sub_fields.pop("f:namespace", None)
                sub_fields.pop("f:managedFields", None)
                sub_fields.pop("f:resourceVersion", None)
            fields[f"f:{key}"] = sub_fields
        else:
            fields[f"f:{key}"] = {}
    return fields


def _parse_selector(selector: str) -> dict[str, str]:
    pairs = {}
    for part in selector.split(","):
        if part:
            key, _, value = part.partition("=")
            pairs[key] = value
    return pairs


class FakeClusterClient:
    """In-memory stand-in for ClusterClient.

    Applies record a managedFields entry for the field manager, status
    patches honour the resourceVersion precondition and every write is kept
    in a call log for assertions.
    """

    def __init__(self) -> None:
        self.objects: dict[tuple[GroupVersionKind, str, str], dict[str, Any]] = {}
        self.applied: list[dict[str, Any]] = []
        self.deleted: list[tuple[str, str, str]] = []
        self.status_patches: list[dict[str, Any]] = []
        self.apply_errors: dict[str, ApiException] = {}
        self.delete_errors: dict[str, ApiException] = {}
        self.list_errors: dict[str, ApiException] = {}
        self._version = 0

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def add(self, obj: dict[str, Any]) -> dict[str, Any]:
        obj = copy.deepcopy(obj)
        obj.setdefault("metadata", {}).setdefault("resourceVersion", self._next_version())
        gvk = GroupVersionKind.from_object(obj)
        metadata = obj["metadata"]
        self.objects[(gvk, metadata.get("namespace", ""), metadata["name"])] = obj
        return obj

    def get(self, gvk: GroupVersionKind, namespace: str, name: str) -> dict[str, Any] | None:
        obj = self.objects.get((gvk, namespace, name))
        return copy.deepcopy(obj) if obj is not None else None

    def get_cluster_scoped(self, gvk: GroupVersionKind, name: str) -> dict[str, Any] | None:
        return self.get(gvk, "", name)

    def get_namespace(self, name: str) -> dict[str, Any] | None:
        return self.get_cluster_scoped(NAMESPACE_GVK, name)

    def list(
        self,
        gvk: GroupVersionKind,
        namespace: str | None = None,
        label_selector: str = "",
    ) -> list[dict[str, Any]]:
        if gvk.kind in self.list_errors:
            raise self.list_errors[gvk.kind]
        wanted = _parse_selector(label_selector)
        items = []
        for (obj_gvk, obj_namespace, _), obj in self.objects.items():
            if obj_gvk != gvk:
                continue
            if namespace and obj_namespace != namespace:
                continue
            labels = obj.get("metadata", {}).get("labels") or {}
            if any(labels.get(key) != value for key, value in wanted.items()):
                continue
            items.append(copy.deepcopy(obj))
        return items

    def apply(self, obj: dict[str, Any], field_manager: str, force: bool = True) -> dict[str, Any]:
        metadata = obj.get("metadata", {})
        name = metadata.get("name", "")
        if name in self.apply_errors:
            raise self.apply_errors[name]
        self.applied.append(copy.deepcopy(obj))

        gvk = GroupVersionKind.from_object(obj)
        key = (gvk, metadata.get("namespace", ""), name)
        live = copy.deepcopy(self.objects.get(key)) or {}
        status = live.get("status")
        stored = copy.deepcopy(obj)
        if status is not None:
            stored["status"] = status
        stored["metadata"]["resourceVersion"] = self._next_version()
        stored["metadata"]["managedFields"] = [{
            "manager": field_manager,
            "operation": "Apply",
            "apiVersion": obj.get("apiVersion"),
            "fieldsType": "FieldsV1",
            "fieldsV1": fields_v1(obj),
        }]
        self.objects[key] = stored
        return copy.deepcopy(stored)

    def delete(self, gvk: GroupVersionKind, namespace: str, name: str) -> None:
        if name in self.delete_errors:
            raise self.delete_errors[name]
        if (gvk, namespace, name) not in self.objects:
            raise ApiException(status=404, reason="Not Found")
        del self.objects[(gvk, namespace, name)]
        self.deleted.append((gvk.kind, namespace, name))

    def patch_status(
        self,
        gvk: GroupVersionKind,
        namespace: str,
        name: str,
        status: dict[str, Any],
        resource_version: str | None = None,
    ) -> dict[str, Any]:
        key = (gvk, namespace, name)
        live = self.objects.get(key)
        if live is None:
            raise ApiException(status=404, reason="Not Found")
        if resource_version and live["metadata"].get("resourceVersion") != resource_version:
            raise ApiException(status=409, reason="Conflict")
        live["status"] = copy.deepcopy(status)
        live["metadata"]["resourceVersion"] = self._next_version()
        self.status_patches.append({"kind": gvk.kind, "namespace": namespace, "name": name, "status": status})
        return copy.deepcopy(live)


def make_namespace(name: str, labels: dict[str, str] | None = None) -> dict[str, Any]:
    return {
        "apiVersion": NAMESPACE_GVK.api_version,
        "kind": NAMESPACE_GVK.kind,
        "metadata": {"name": name, "labels": labels or {"kubernetes.io/metadata.name": name}},
    }


def make_gateway_class(name: str = "kong", controller_name: str = DEFAULT_CONTROLLER_NAME) -> dict[str, Any]:
    return {
        "apiVersion": GATEWAY_CLASS_GVK.api_version,
        "kind": GATEWAY_CLASS_GVK.kind,
        "metadata": {"name": name},
        "spec": {"controllerName": controller_name},
    }


def make_listener(
    name: str = "http",
    port: int = 80,
    protocol: str = "HTTP",
    hostname: str | None = None,
    allowed_routes: dict[str, Any] | None = None,
) -> dict[str, Any]:
    listener: dict[str, Any] = {"name": name, "port": port, "protocol": protocol}
    if hostname is not None:
        listener["hostname"] = hostname
    if allowed_routes is not None:
        listener["allowedRoutes"] = allowed_routes
    return listener


def make_gateway(
    name: str = "gw",
    namespace: str = "default",
    class_name: str = "kong",
    listeners: list[dict[str, Any]] | None = None,
    programmed: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Gateway whose listeners are Programmed=True unless ``programmed`` overrides them."""
    listeners = listeners if listeners is not None else [make_listener()]
    programmed = programmed or {}
    return {
        "apiVersion": GATEWAY_GVK.api_version,
        "kind": GATEWAY_GVK.kind,
        "metadata": {"name": name, "namespace": namespace},
        "spec": {"gatewayClassName": class_name, "listeners": listeners},
        "status": {
            "listeners": [
                {
                    "name": listener["name"],
                    "conditions": [{"type": "Programmed", "status": programmed.get(listener["name"], "True")}],
                }
                for listener in listeners
            ],
        },
    }


def make_service(name: str = "svc", namespace: str = "default", ports: list[int] | None = None) -> dict[str, Any]:
    return {
        "apiVersion": SERVICE_GVK.api_version,
        "kind": SERVICE_GVK.kind,
        "metadata": {"name": name, "namespace": namespace, "uid": f"uid-{namespace}-{name}"},
        "spec": {"ports": [{"port": port} for port in (ports or [80])]},
    }


def make_route(
    name: str = "route",
    namespace: str = "default",
    parent_refs: list[dict[str, Any]] | None = None,
    rules: list[dict[str, Any]] | None = None,
    hostnames: list[str] | None = None,
    generation: int = 1,
) -> dict[str, Any]:
    spec: dict[str, Any] = {
        "parentRefs": parent_refs if parent_refs is not None else [{"name": "gw"}],
        "rules": rules if rules is not None else [{"backendRefs": [{"name": "svc", "port": 80}]}],
    }
    if hostnames is not None:
        spec["hostnames"] = hostnames
    return {
        "apiVersion": HTTP_ROUTE_GVK.api_version,
        "kind": HTTP_ROUTE_GVK.kind,
        "metadata": {"name": name, "namespace": namespace, "uid": f"uid-{namespace}-{name}", "generation": generation},
        "spec": spec,
    }


@pytest.fixture(autouse=True)
def clear_cache():
    """GatewayClass lookups are cached process-wide."""
    invalidate_cache()
    yield
    invalidate_cache()


@pytest.fixture
def fake_client() -> FakeClusterClient:
    return FakeClusterClient()


@pytest.fixture
def config() -> OperatorConfig:
    return OperatorConfig(controller_name=DEFAULT_CONTROLLER_NAME, field_manager=DEFAULT_FIELD_MANAGER)


@pytest.fixture
def shared_status_map() -> SharedRouteStatusMap:
    return SharedRouteStatusMap()


@pytest.fixture
def cluster(fake_client: FakeClusterClient) -> FakeClusterClient:
    """A cluster with the default namespace, a Gateway served by this controller and a Service."""
    fake_client.add(make_namespace("default"))
    fake_client.add(make_gateway_class())
    fake_client.add(make_gateway())
    fake_client.add(make_service())
    return fake_client

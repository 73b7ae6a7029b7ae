"""Service (backend) translation and shared status reporting."""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any

from ..constants import ANNOTATION_HYBRID_GATEWAYS, ANNOTATION_HYBRID_ROUTE, HTTP_ROUTE_KEY, MANAGED_BY_SERVICE
from ..gvk import HTTP_ROUTE_GVK, KONG_SERVICE_GVK, SERVICE_GVK, GroupVersionKind
from ..metadata import build_labels, split_annotation_list
from ..route.status import get_supported_gateway_for_parent_ref
from ..utils.conditions import is_programmed
from ..utils.errors import OperatorError, UnsupportedParentRefError
from ..utils.objects import namespaced_name, object_key
from .base import APIConverter

logger = logging.getLogger(__name__)


def _spec_hash(value: Any, length: int = 10) -> str:
    encoded = json.dumps(value, sort_keys=True, separators=(",", ":")).encode()
    return hashlib.sha256(encoded).hexdigest()[:length]


class ServiceConverter(APIConverter):
    """Emits one KongService per (HTTPRoute, backendRef) pointing at this Service.

    Each KongService records the route and the Gateways it serves in the
    hybrid-route and hybrid-gateways annotations, which is how programmed
    counts are attributed in the shared status map.
    """

    root_gvk = SERVICE_GVK
    managed_by = MANAGED_BY_SERVICE

    def get_expected_gvks(self) -> list[GroupVersionKind]:
        return [KONG_SERVICE_GVK]

    @property
    def namespace(self) -> str:
        return self.root.get("metadata", {}).get("namespace", "")

    @property
    def name(self) -> str:
        return self.root.get("metadata", {}).get("name", "")

    def _service_ports(self) -> set[int]:
        return {port.get("port") for port in self.root.get("spec", {}).get("ports") or [] if port.get("port")}

    def _matching_backend_refs(self, route: dict[str, Any]) -> list[dict[str, Any]]:
        """First backendRef per rule targeting this Service on one of its ports."""
        ports = self._service_ports()
        matches = []
        for rule in route.get("spec", {}).get("rules") or []:
            for backend_ref in rule.get("backendRefs") or []:
                if (
                    backend_ref.get("name") == self.name
                    and backend_ref.get("namespace") in (None, self.namespace)
                    and backend_ref.get("port") in ports
                ):
                    matches.append(backend_ref)
                    break
        return matches

    def _gateway_keys(self, route: dict[str, Any]) -> list[str]:
        route_namespace = route.get("metadata", {}).get("namespace", "")
        keys = []
        for parent_ref in route.get("spec", {}).get("parentRefs") or []:
            try:
                gateway = get_supported_gateway_for_parent_ref(
                    self.client, parent_ref, route_namespace, self.config.controller_name
                )
            except UnsupportedParentRefError:
                continue
            if gateway is None:
                continue
            key = object_key(gateway)
            if key not in keys:
                keys.append(key)
        return keys

    def translate(self) -> None:
        self.output_store = []
        seen = set()
        routes = self.client.list(HTTP_ROUTE_GVK, namespace=self.namespace)
        host = f"{self.name}.{self.namespace}.svc.cluster.local"

        for route in routes:
            backend_refs = self._matching_backend_refs(route)
            if not backend_refs:
                continue
            gateway_keys = self._gateway_keys(route)
            if not gateway_keys:
                logger.debug(f"HTTPRoute {object_key(route)} is not attached to a served Gateway")
                continue

            route_annotation = f"{HTTP_ROUTE_KEY}|{object_key(route)}"
            gateways_annotation = ",".join(gateway_keys)
            for backend_ref in backend_refs:
                spec = {"host": host, "port": backend_ref["port"]}
                spec["name"] = f"{self.namespace}_{self.name}-{_spec_hash(spec, 8)}"
                name = f"{self.name}-{_spec_hash([route_annotation, gateways_annotation, spec])}"
                if name in seen:
                    continue
                seen.add(name)
                self.output_store.append(self._kong_service(name, spec, route_annotation, gateways_annotation))

        logger.debug(f"Translated Service {object_key(self.root)} into {len(self.output_store)} KongService(s)")

    def _kong_service(
        self, name: str, spec: dict[str, Any], route_annotation: str, gateways_annotation: str
    ) -> dict[str, Any]:
        metadata: dict[str, Any] = {
            "name": name,
            "namespace": self.namespace,
            "labels": build_labels(self.root, self.managed_by),
            "annotations": {
                ANNOTATION_HYBRID_ROUTE: route_annotation,
                ANNOTATION_HYBRID_GATEWAYS: gateways_annotation,
            },
        }
        uid = self.root.get("metadata", {}).get("uid")
        if uid:
            metadata["ownerReferences"] = [{
                "apiVersion": SERVICE_GVK.api_version,
                "kind": SERVICE_GVK.kind,
                "name": self.name,
                "uid": uid,
                "controller": True,
                "blockOwnerDeletion": True,
            }]
        return {
            "apiVersion": KONG_SERVICE_GVK.api_version,
            "kind": KONG_SERVICE_GVK.kind,
            "metadata": metadata,
            "spec": spec,
        }

    def update_root_object_status(self) -> tuple[bool, bool]:
        """Services carry no status written by this controller."""
        return False, False

    def handle_orphaned_resource(self, obj: dict[str, Any]) -> bool:
        return False

    def update_shared_route_status(self, objs: list[dict[str, Any]]) -> None:
        """Count programmed KongServices per route and gateway and publish them.

        Raises:
            OperatorError: An object lacks the route or gateways annotation
        """
        grouped: dict[str, list[dict[str, Any]]] = {}
        for obj in objs:
            annotations = obj.get("metadata", {}).get("annotations") or {}
            if ANNOTATION_HYBRID_ROUTE not in annotations:
                raise OperatorError(f"missing route annotation on object {object_key(obj)}")
            if ANNOTATION_HYBRID_GATEWAYS not in annotations:
                raise OperatorError(f"missing gateways annotation on object {object_key(obj)}")
            for gateway in split_annotation_list(annotations[ANNOTATION_HYBRID_GATEWAYS]):
                grouped.setdefault(f"{annotations[ANNOTATION_HYBRID_ROUTE]}|{gateway}", []).append(obj)

        service_key = namespaced_name(self.namespace, self.name)
        for key, group in grouped.items():
            programmed = sum(1 for obj in group if is_programmed(obj))
            self.shared_status_map.update_programmed_services(service_key, key, programmed)

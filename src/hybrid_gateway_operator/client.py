"""Kubernetes API access for dynamically-typed objects."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from kubernetes import client
from kubernetes.client.exceptions import ApiException

from . import metrics
from .constants import KIND_NAMESPACE, KIND_SERVICE
from .gvk import NAMESPACE_GVK, GroupVersionKind
from .utils.errors import is_not_found
from .utils.rate_limit import handle_rate_limit_error, rate_limit_k8s

logger = logging.getLogger(__name__)

APPLY_PATCH_CONTENT_TYPE = "application/apply-patch+yaml"


class ClusterClient:
    """CRUD over Kubernetes objects represented as plain dicts.

    Core kinds (Service, Namespace) go through ``CoreV1Api``; everything else
    through ``CustomObjectsApi``. Reads of missing objects return ``None``;
    other API errors propagate as ``ApiException``.
    """

    def __init__(
        self,
        custom_api: client.CustomObjectsApi | None = None,
        core_api: client.CoreV1Api | None = None,
        request_timeout: float = 30.0,
    ):
        self.custom_api = custom_api or client.CustomObjectsApi()
        self.core_api = core_api or client.CoreV1Api()
        self.request_timeout = request_timeout

    def _call(self, operation: str, fn: Callable[..., Any], **kwargs: Any) -> Any:
        """Invoke an API method with rate limiting, metrics and rate-limit retries."""
        attempt = 0
        while True:
            start_time = time.time()
            try:
                result = rate_limit_k8s(fn)(_request_timeout=self.request_timeout, **kwargs)
                metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
                return result
            except ApiException as e:
                result_label = "not_found" if is_not_found(e) else "error"
                metrics.api_call_total.labels(api_type="k8s", operation=operation, result=result_label).inc()
                if handle_rate_limit_error(e, attempt):
                    attempt += 1
                    continue
                raise
            finally:
                duration = time.time() - start_time
                metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(duration)

    def _to_dict(self, obj: Any, gvk: GroupVersionKind) -> dict[str, Any]:
        """Convert a typed core object to the dict form used everywhere else."""
        data = self.core_api.api_client.sanitize_for_serialization(obj)
        data.setdefault("apiVersion", gvk.api_version)
        data.setdefault("kind", gvk.kind)
        return data

    def get(self, gvk: GroupVersionKind, namespace: str, name: str) -> dict[str, Any] | None:
        """Get a namespaced object, or None when it does not exist."""
        try:
            if gvk.is_core and gvk.kind == KIND_SERVICE:
                obj = self._call("get", self.core_api.read_namespaced_service, name=name, namespace=namespace)
                return self._to_dict(obj, gvk)
            return self._call(
                "get",
                self.custom_api.get_namespaced_custom_object,
                group=gvk.group,
                version=gvk.version,
                namespace=namespace,
                plural=gvk.plural,
                name=name,
            )
        except ApiException as e:
            if is_not_found(e):
                return None
            raise

    def get_cluster_scoped(self, gvk: GroupVersionKind, name: str) -> dict[str, Any] | None:
        """Get a cluster-scoped object, or None when it does not exist."""
        try:
            if gvk.is_core and gvk.kind == KIND_NAMESPACE:
                return self._to_dict(self._call("get", self.core_api.read_namespace, name=name), gvk)
            return self._call(
                "get",
                self.custom_api.get_cluster_custom_object,
                group=gvk.group,
                version=gvk.version,
                plural=gvk.plural,
                name=name,
            )
        except ApiException as e:
            if is_not_found(e):
                return None
            raise

    def get_namespace(self, name: str) -> dict[str, Any] | None:
        return self.get_cluster_scoped(NAMESPACE_GVK, name)

    def list(
        self,
        gvk: GroupVersionKind,
        namespace: str | None = None,
        label_selector: str = "",
    ) -> list[dict[str, Any]]:
        """List objects of a kind.

        Args:
            gvk: Kind to list
            namespace: Namespace to list in, or None for all namespaces
            label_selector: Equality-based label selector string

        Returns:
            List of object dicts, each carrying ``apiVersion`` and ``kind``
        """
        kwargs: dict[str, Any] = {}
        if label_selector:
            kwargs["label_selector"] = label_selector

        if gvk.is_core and gvk.kind in (KIND_SERVICE, KIND_NAMESPACE):
            if gvk.kind == KIND_NAMESPACE:
                result = self._call("list", self.core_api.list_namespace, **kwargs)
            elif namespace:
                result = self._call("list", self.core_api.list_namespaced_service, namespace=namespace, **kwargs)
            else:
                result = self._call("list", self.core_api.list_service_for_all_namespaces, **kwargs)
            return [self._to_dict(item, gvk) for item in result.items]

        if namespace:
            result = self._call(
                "list",
                self.custom_api.list_namespaced_custom_object,
                group=gvk.group,
                version=gvk.version,
                namespace=namespace,
                plural=gvk.plural,
                **kwargs,
            )
        else:
            result = self._call(
                "list",
                self.custom_api.list_cluster_custom_object,
                group=gvk.group,
                version=gvk.version,
                plural=gvk.plural,
                **kwargs,
            )
        items = result.get("items", [])
        for item in items:
            item.setdefault("apiVersion", gvk.api_version)
            item.setdefault("kind", gvk.kind)
        return items

    def apply(self, obj: dict[str, Any], field_manager: str, force: bool = True) -> dict[str, Any]:
        """Server-side apply an object under the given field manager.

        Raises:
            ApiException: 409 when another manager owns a field and force is off
        """
        gvk = GroupVersionKind.from_object(obj)
        metadata = obj.get("metadata", {})
        namespace = metadata.get("namespace", "")
        name = metadata.get("name", "")

        logger.debug(f"Applying {gvk} {namespace}/{name} as {field_manager}")
        if gvk.is_core and gvk.kind == KIND_SERVICE:
            result = self._call(
                "apply",
                self.core_api.patch_namespaced_service,
                name=name,
                namespace=namespace,
                body=obj,
                field_manager=field_manager,
                force=force,
                _content_type=APPLY_PATCH_CONTENT_TYPE,
            )
            return self._to_dict(result, gvk)
        return self._call(
            "apply",
            self.custom_api.patch_namespaced_custom_object,
            group=gvk.group,
            version=gvk.version,
            namespace=namespace,
            plural=gvk.plural,
            name=name,
            body=obj,
            field_manager=field_manager,
            force=force,
            _content_type=APPLY_PATCH_CONTENT_TYPE,
        )

    def delete(self, gvk: GroupVersionKind, namespace: str, name: str) -> None:
        """Delete a namespaced object.

        Raises:
            ApiException: Including 404 when the object is already gone
        """
        if gvk.is_core and gvk.kind == KIND_SERVICE:
            self._call("delete", self.core_api.delete_namespaced_service, name=name, namespace=namespace)
            return
        self._call(
            "delete",
            self.custom_api.delete_namespaced_custom_object,
            group=gvk.group,
            version=gvk.version,
            namespace=namespace,
            plural=gvk.plural,
            name=name,
        )

    def patch_status(
        self,
        gvk: GroupVersionKind,
        namespace: str,
        name: str,
        status: dict[str, Any],
        resource_version: str | None = None,
    ) -> dict[str, Any]:
        """Merge-patch the status subresource.

        When ``resource_version`` is given the API server rejects the patch
        with 409 if the object changed since it was read.
        """
        body: dict[str, Any] = {"status": status}
        if resource_version:
            body["metadata"] = {"resourceVersion": resource_version}
        return self._call(
            "patch_status",
            self.custom_api.patch_namespaced_custom_object_status,
            group=gvk.group,
            version=gvk.version,
            namespace=namespace,
            plural=gvk.plural,
            name=name,
            body=body,
        )


def get_k8s_client(request_timeout: float = 30.0) -> ClusterClient:
    """Load cluster credentials and build a ClusterClient.

    Returns:
        ClusterClient instance
    """
    from kubernetes import config

    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()

    return ClusterClient(request_timeout=request_timeout)

"""Converter contract between a root object and the Kong resources generated from it."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from kubernetes.client.exceptions import ApiException

from ..constants import MANAGED_BY_HTTP_ROUTE
from ..config import OperatorConfig
from ..gvk import GroupVersionKind
from ..metadata import AnnotationManager
from ..route.shared_status import SharedRouteStatusMap
from ..utils.errors import ConflictError, TypeAssertionError, is_conflict
from ..utils.objects import object_key

logger = logging.getLogger(__name__)


class APIConverter(ABC):
    """Translates one root object into a desired set of generated objects.

    Subclasses set ``root_gvk`` and implement translation, the list of kinds
    they may emit and the root object's status. ``translate()`` must only
    read from the cluster; enforcing and garbage collecting the output is
    done by the caller.

    Args:
        obj: Root object as a dict
        client: Cluster client
        config: Operator configuration
        shared_status_map: Map shared between route and backend controllers
    """

    root_gvk: GroupVersionKind
    managed_by: str = MANAGED_BY_HTTP_ROUTE

    def __init__(
        self,
        obj: dict[str, Any],
        client: Any,
        config: OperatorConfig,
        shared_status_map: SharedRouteStatusMap,
    ):
        kind = obj.get("kind")
        if kind != self.root_gvk.kind:
            raise TypeAssertionError(f"{type(self).__name__} expects {self.root_gvk.kind}, got {kind}")
        self.root = obj
        self.client = client
        self.config = config
        self.shared_status_map = shared_status_map
        self.output_store: list[dict[str, Any]] = []

    @abstractmethod
    def translate(self) -> None:
        """Compute the desired objects into ``output_store``."""

    def get_output_store(self) -> list[dict[str, Any]]:
        return list(self.output_store)

    @abstractmethod
    def get_expected_gvks(self) -> list[GroupVersionKind]:
        """Every kind this converter may ever emit; scopes garbage collection."""

    def get_root_object(self) -> dict[str, Any]:
        return self.root

    @abstractmethod
    def update_root_object_status(self) -> tuple[bool, bool]:
        """Compute and write the root object's status.

        Returns:
            ``(updated, stop)``; ``stop`` means the object is not served by this
            controller and nothing should be translated for it
        """

    @abstractmethod
    def update_shared_route_status(self, objs: list[dict[str, Any]]) -> None:
        """Publish what the live generated objects report to the shared status map."""

    def handle_orphaned_resource(self, obj: dict[str, Any]) -> bool:
        """Decide what happens to a generated object that is no longer desired.

        Objects listing several routes in their hybrid-route annotation are
        shared: this route is removed from the annotation and the object is
        kept. Objects without the annotation or not naming this route are left
        alone.

        Returns:
            True to skip deletion, False to delete the object

        Raises:
            ConflictError: Updating a shared object's annotation conflicted
        """
        manager = AnnotationManager()
        routes = manager.get_routes(obj)
        root_key = object_key(self.root)
        if not manager.contains_route(obj, self.root):
            logger.debug(f"Orphan candidate {object_key(obj)} does not name {root_key}, keeping it")
            return True
        if routes == [root_key]:
            return False

        manager.remove_route(obj, self.root)
        gvk = GroupVersionKind.from_object(obj)
        metadata = obj.get("metadata", {})
        patch = {
            "apiVersion": obj.get("apiVersion"),
            "kind": obj.get("kind"),
            "metadata": {
                "name": metadata.get("name"),
                "namespace": metadata.get("namespace"),
                "annotations": metadata.get("annotations") or {},
            },
        }
        try:
            self.client.apply(patch, self.config.field_manager)
        except ApiException as e:
            if is_conflict(e):
                raise ConflictError(gvk, metadata.get("namespace", ""), metadata.get("name", ""), e) from e
            raise
        logger.info(f"Removed {root_key} from shared {gvk.kind} {object_key(obj)}")
        return True

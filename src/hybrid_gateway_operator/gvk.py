"""GroupVersionKind value type for dynamically-typed objects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .constants import (
    GATEWAY_API_GROUP,
    GATEWAY_API_VERSION,
    KIND_GATEWAY,
    KIND_GATEWAY_CLASS,
    KIND_HTTP_ROUTE,
    KIND_KONG_PLUGIN,
    KIND_KONG_PLUGIN_BINDING,
    KIND_KONG_ROUTE,
    KIND_KONG_SERVICE,
    KIND_KONG_TARGET,
    KIND_KONG_UPSTREAM,
    KIND_NAMESPACE,
    KIND_REFERENCE_GRANT,
    KIND_SERVICE,
    KONG_CONFIGURATION_GROUP,
    KONG_CONFIGURATION_VERSION,
    KONG_PLUGIN_VERSION,
    REFERENCE_GRANT_VERSION,
)


@dataclass(frozen=True)
class GroupVersionKind:
    """Identifies the type of a Kubernetes object."""

    group: str
    version: str
    kind: str

    @classmethod
    def from_api_version(cls, api_version: str, kind: str) -> "GroupVersionKind":
        """Parse an ``apiVersion`` string (``group/version`` or ``version``)."""
        if "/" in api_version:
            group, version = api_version.split("/", 1)
        else:
            group, version = "", api_version
        return cls(group=group, version=version, kind=kind)

    @classmethod
    def from_object(cls, obj: dict[str, Any]) -> "GroupVersionKind":
        """Read the GVK from an object's ``apiVersion`` and ``kind`` fields."""
        return cls.from_api_version(obj.get("apiVersion", ""), obj.get("kind", ""))

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    @property
    def plural(self) -> str:
        lowered = self.kind.lower()
        if lowered.endswith("s"):
            return f"{lowered}es"
        return f"{lowered}s"

    @property
    def is_core(self) -> bool:
        return self.group in ("", "core")

    def __str__(self) -> str:
        return f"{self.api_version}, Kind={self.kind}"


GATEWAY_GVK = GroupVersionKind(GATEWAY_API_GROUP, GATEWAY_API_VERSION, KIND_GATEWAY)
GATEWAY_CLASS_GVK = GroupVersionKind(GATEWAY_API_GROUP, GATEWAY_API_VERSION, KIND_GATEWAY_CLASS)
HTTP_ROUTE_GVK = GroupVersionKind(GATEWAY_API_GROUP, GATEWAY_API_VERSION, KIND_HTTP_ROUTE)
REFERENCE_GRANT_GVK = GroupVersionKind(GATEWAY_API_GROUP, REFERENCE_GRANT_VERSION, KIND_REFERENCE_GRANT)
SERVICE_GVK = GroupVersionKind("", "v1", KIND_SERVICE)
NAMESPACE_GVK = GroupVersionKind("", "v1", KIND_NAMESPACE)

KONG_ROUTE_GVK = GroupVersionKind(KONG_CONFIGURATION_GROUP, KONG_CONFIGURATION_VERSION, KIND_KONG_ROUTE)
KONG_SERVICE_GVK = GroupVersionKind(KONG_CONFIGURATION_GROUP, KONG_CONFIGURATION_VERSION, KIND_KONG_SERVICE)
KONG_UPSTREAM_GVK = GroupVersionKind(KONG_CONFIGURATION_GROUP, KONG_CONFIGURATION_VERSION, KIND_KONG_UPSTREAM)
KONG_TARGET_GVK = GroupVersionKind(KONG_CONFIGURATION_GROUP, KONG_CONFIGURATION_VERSION, KIND_KONG_TARGET)
KONG_PLUGIN_GVK = GroupVersionKind(KONG_CONFIGURATION_GROUP, KONG_PLUGIN_VERSION, KIND_KONG_PLUGIN)
KONG_PLUGIN_BINDING_GVK = GroupVersionKind(
    KONG_CONFIGURATION_GROUP, KONG_CONFIGURATION_VERSION, KIND_KONG_PLUGIN_BINDING
)

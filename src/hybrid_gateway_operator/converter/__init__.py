"""Converters from root objects to generated Kong resources."""

from __future__ import annotations

from typing import Any

from ..config import OperatorConfig
from ..route.shared_status import SharedRouteStatusMap
from ..utils.errors import TypeAssertionError
from .base import APIConverter
from .httproute import HTTPRouteConverter
from .service import ServiceConverter

CONVERTERS: dict[str, type[APIConverter]] = {
    HTTPRouteConverter.root_gvk.kind: HTTPRouteConverter,
    ServiceConverter.root_gvk.kind: ServiceConverter,
}


def new_converter(
    obj: dict[str, Any],
    client: Any,
    config: OperatorConfig,
    shared_status_map: SharedRouteStatusMap,
) -> APIConverter:
    """Build the converter for the object's kind.

    Raises:
        TypeAssertionError: No converter handles the object's kind
    """
    converter_cls = CONVERTERS.get(obj.get("kind", ""))
    if converter_cls is None:
        raise TypeAssertionError(f"no converter for kind {obj.get('kind')}")
    return converter_cls(obj, client, config, shared_status_map)


__all__ = ["APIConverter", "HTTPRouteConverter", "ServiceConverter", "new_converter"]

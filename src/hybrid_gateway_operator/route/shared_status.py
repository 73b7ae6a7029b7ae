"""Process-wide map of backend programming state shared between controllers.

The Service controller writes how many of its generated KongServices are
programmed for each (route, gateway) pair; the HTTPRoute status updater reads
it to compute BackendsProgrammed. Entries are rebuilt from scratch after a
restart.
"""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from .. import metrics
from ..utils.objects import object_key

logger = logging.getLogger(__name__)


def status_map_key(route_kind: str, route_key: str, gateway_key: str) -> str:
    """Build a ``routeKind|routeNs/name|gatewayNs/name`` key."""
    return f"{route_kind}|{route_key}|{gateway_key}"


@dataclass
class ServiceControllerStatus:
    """What a backend controller last reported for one key.

    ``initialized`` stays False until the backend controller reported at least
    once; such an entry means "unknown", never "not programmed".
    """

    initialized: bool = False
    programmed_backends: int = 0


@dataclass
class SharedRouteStatus:
    services: dict[str, ServiceControllerStatus] = field(default_factory=dict)


class SharedRouteStatusMap:
    """Lock-guarded mapping of status keys to per-service programming state."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.shared_status: dict[str, SharedRouteStatus] = {}

    def update_programmed_services(self, service: dict[str, Any] | str, key: str, programmed_count: int) -> None:
        """Record the programmed KongService count a Service reported for a key.

        Args:
            service: Service object, or its ``namespace/name``
            key: Status map key
            programmed_count: Number of programmed objects for that key
        """
        service_key = service if isinstance(service, str) else object_key(service)
        with self._lock:
            entry = self.shared_status.setdefault(key, SharedRouteStatus())
            entry.services[service_key] = ServiceControllerStatus(
                initialized=True,
                programmed_backends=programmed_count,
            )
            size = len(self.shared_status)
        metrics.shared_status_entries.set(size)
        logger.debug(f"Service {service_key} reported {programmed_count} programmed backend(s) for {key}")

    def get_programmed_services(self, key: str, service_key: str) -> tuple[int, bool]:
        """Return ``(programmed_count, initialized)`` for one service under a key.

        Unknown keys or services report ``(0, False)``.
        """
        with self._lock:
            entry = self.shared_status.get(key)
            if entry is None or service_key not in entry.services:
                return 0, False
            status = entry.services[service_key]
            return status.programmed_backends, status.initialized

    def get_route_status(self, key: str) -> SharedRouteStatus | None:
        """Return a copy of the entry for a key, or None."""
        with self._lock:
            entry = self.shared_status.get(key)
            return copy.deepcopy(entry) if entry is not None else None

    def remove_service(self, service_key: str) -> list[str]:
        """Forget a deleted Service everywhere.

        Returns:
            Keys the service was removed from
        """
        touched = []
        with self._lock:
            for key in list(self.shared_status):
                entry = self.shared_status[key]
                if service_key in entry.services:
                    del entry.services[service_key]
                    touched.append(key)
                    if not entry.services:
                        del self.shared_status[key]
            size = len(self.shared_status)
        metrics.shared_status_entries.set(size)
        return touched


_shared_status_map: SharedRouteStatusMap | None = None
_shared_status_map_lock = threading.Lock()


def get_shared_status_map() -> SharedRouteStatusMap:
    """Return the process-wide map shared by all controllers."""
    global _shared_status_map
    with _shared_status_map_lock:
        if _shared_status_map is None:
            _shared_status_map = SharedRouteStatusMap()
        return _shared_status_map

"""Process-wide objects shared by all handlers."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

from ..client import get_k8s_client
from ..config import OperatorConfig, get_config
from ..route.shared_status import SharedRouteStatusMap, get_shared_status_map


@dataclass
class Runtime:
    """Cluster client, configuration and shared status map used by every handler."""

    client: Any
    config: OperatorConfig
    shared_status_map: SharedRouteStatusMap


_runtime: Runtime | None = None
_runtime_lock = threading.Lock()


def get_runtime() -> Runtime:
    """Return the runtime, connecting to the cluster on first use."""
    global _runtime
    with _runtime_lock:
        if _runtime is None:
            config = get_config()
            _runtime = Runtime(
                client=get_k8s_client(config.request_timeout_seconds),
                config=config,
                shared_status_map=get_shared_status_map(),
            )
        return _runtime


def set_runtime(runtime: Runtime | None) -> None:
    """Replace the runtime; None forces a new one to be built on next use."""
    global _runtime
    with _runtime_lock:
        _runtime = runtime

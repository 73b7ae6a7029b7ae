"""Main entry point for the Hybrid Gateway Operator."""

from __future__ import annotations

from typing import Any

import kopf

from . import handlers  # noqa: F401
from . import health
from . import logging as structured_logging
from .config import get_config
from .utils.cache import set_cache_ttl
from .utils.rate_limit import set_k8s_rate_limit
from .tracing import initialize_tracing


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator."""
    config = get_config()

    # Set up structured JSON logging
    structured_logging.setup_structured_logging()

    # Use AnnotationsProgressStorage to avoid conflicts with status updates
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()

    settings.posting.level = 0
    settings.networking.request_timeout = config.request_timeout_seconds
    settings.execution.max_workers = config.max_workers

    set_k8s_rate_limit(config.rate_limit_per_second)
    set_cache_ttl(config.cache_ttl_seconds)

    initialize_tracing()

    # Metrics and health check endpoints share one port
    health.start_http_server(config.metrics_port)
    health.mark_ready()

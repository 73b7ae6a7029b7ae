"""Rate limiting utilities for API calls."""

from __future__ import annotations

import threading
import time
from functools import wraps
from typing import Any, Callable, TypeVar

from kubernetes.client.exceptions import ApiException

from .. import metrics

_F = TypeVar("_F", bound=Callable[..., Any])

# Replaced at startup from OperatorConfig.rate_limit_per_second
_K8S_RATE_LIMIT_PER_SECOND = 10.0

# Handlers run on several worker threads
_k8s_lock = threading.Lock()
_k8s_last_call_time: float = 0.0


def rate_limit_k8s(func: _F) -> _F:
    """Decorator to rate limit Kubernetes API calls.

    Spaces calls at least ``1 / K8S_RATE_LIMIT_PER_SECOND`` seconds apart
    across all worker threads.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        global _k8s_last_call_time
        with _k8s_lock:
            min_interval = 1.0 / _K8S_RATE_LIMIT_PER_SECOND
            time_since_last_call = time.time() - _k8s_last_call_time
            if time_since_last_call < min_interval:
                time.sleep(min_interval - time_since_last_call)
            _k8s_last_call_time = time.time()
        return func(*args, **kwargs)

    return wrapper  # type: ignore


def set_k8s_rate_limit(per_second: float) -> None:
    """Set the number of Kubernetes API calls allowed per second."""
    global _K8S_RATE_LIMIT_PER_SECOND
    _K8S_RATE_LIMIT_PER_SECOND = per_second


def is_rate_limit_error(e: ApiException) -> bool:
    """Return True for 429 responses and 503s that mention rate limiting."""
    return e.status == 429 or (e.status == 503 and "rate limit" in str(e).lower())


def handle_rate_limit_error(e: ApiException, attempt: int, max_retries: int = 3) -> bool:
    """Check if an API exception is a rate limit error and back off.

    Args:
        e: API exception
        attempt: Zero-based number of retries already made for this call
        max_retries: Maximum number of retries

    Returns:
        True if the caller should retry, False otherwise
    """
    if not is_rate_limit_error(e):
        return False
    metrics.rate_limit_hits_total.labels(api_type="kubernetes").inc()
    if attempt >= max_retries:
        return False
    # Exponential backoff: 1s, 2s, 4s
    time.sleep(2**attempt)
    return True

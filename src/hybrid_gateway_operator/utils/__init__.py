"""Utility functions for the Hybrid Gateway Operator."""

from .cache import (
    get_cached_object,
    invalidate_cache,
    make_cache_key,
    set_cached_object,
)
from .conditions import (
    deduplicate_conditions_by_type,
    get_programmed_condition_for_gvk,
)
from .events import emit_event
from .rate_limit import handle_rate_limit_error, rate_limit_k8s

__all__ = [
    "deduplicate_conditions_by_type",
    "get_programmed_condition_for_gvk",
    "emit_event",
    "get_cached_object",
    "set_cached_object",
    "invalidate_cache",
    "make_cache_key",
    "rate_limit_k8s",
    "handle_rate_limit_error",
]

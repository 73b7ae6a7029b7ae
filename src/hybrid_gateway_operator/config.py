"""Operator configuration loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .constants import DEFAULT_CONTROLLER_NAME, DEFAULT_FIELD_MANAGER
from .utils.errors import ConfigurationError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class OperatorConfig:
    """Runtime settings shared by all controllers."""

    controller_name: str = DEFAULT_CONTROLLER_NAME
    field_manager: str = DEFAULT_FIELD_MANAGER
    enable_reference_grant: bool = True
    metrics_port: int = 8080
    max_workers: int = 4
    requeue_delay_seconds: float = 1.0
    status_resync_interval_seconds: float = 30.0
    request_timeout_seconds: float = 30.0
    rate_limit_per_second: float = 10.0
    cache_ttl_seconds: float = 30.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "OperatorConfig":
        """Build the configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Returns:
            OperatorConfig instance

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        env = os.environ if environ is None else environ
        rate_limit_per_second = _parse_float(env, "K8S_RATE_LIMIT_PER_SECOND", 10.0)
        if rate_limit_per_second <= 0:
            raise ConfigurationError(f"K8S_RATE_LIMIT_PER_SECOND must be positive, got {rate_limit_per_second}")
        return cls(
            controller_name=env.get("CONTROLLER_NAME", DEFAULT_CONTROLLER_NAME),
            field_manager=env.get("FIELD_MANAGER", DEFAULT_FIELD_MANAGER),
            enable_reference_grant=_parse_bool(env, "ENABLE_REFERENCE_GRANT", True),
            metrics_port=_parse_int(env, "METRICS_PORT", 8080),
            max_workers=_parse_int(env, "MAX_WORKERS", 4),
            requeue_delay_seconds=_parse_float(env, "REQUEUE_DELAY_SECONDS", 1.0),
            status_resync_interval_seconds=_parse_float(env, "STATUS_RESYNC_INTERVAL_SECONDS", 30.0),
            request_timeout_seconds=_parse_float(env, "K8S_REQUEST_TIMEOUT_SECONDS", 30.0),
            rate_limit_per_second=rate_limit_per_second,
            cache_ttl_seconds=_parse_float(env, "K8S_CACHE_TTL_SECONDS", 30.0),
        )


def _parse_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{key} must be a boolean, got {raw!r}")


def _parse_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from e


def _parse_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}") from e


_config: OperatorConfig | None = None


def get_config() -> OperatorConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = OperatorConfig.from_env()
    return _config

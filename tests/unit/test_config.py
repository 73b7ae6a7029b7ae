"""Tests for operator configuration."""

from __future__ import annotations

import pytest

from hybrid_gateway_operator.config import OperatorConfig
from hybrid_gateway_operator.constants import DEFAULT_CONTROLLER_NAME, DEFAULT_FIELD_MANAGER
from hybrid_gateway_operator.utils.errors import ConfigurationError


class TestOperatorConfig:
    """Test cases for OperatorConfig.from_env."""

    def test_defaults(self):
        """Test defaults apply when nothing is set."""
        config = OperatorConfig.from_env({})

        assert config.controller_name == DEFAULT_CONTROLLER_NAME
        assert config.field_manager == DEFAULT_FIELD_MANAGER
        assert config.enable_reference_grant is True
        assert config.metrics_port == 8080
        assert config.requeue_delay_seconds == 1.0

    def test_overrides(self):
        config = OperatorConfig.from_env({
            "CONTROLLER_NAME": "example.com/gateway",
            "ENABLE_REFERENCE_GRANT": "false",
            "MAX_WORKERS": "8",
            "STATUS_RESYNC_INTERVAL_SECONDS": "5.5",
        })

        assert config.controller_name == "example.com/gateway"
        assert config.enable_reference_grant is False
        assert config.max_workers == 8
        assert config.status_resync_interval_seconds == 5.5

    def test_empty_value_uses_default(self):
        assert OperatorConfig.from_env({"METRICS_PORT": ""}).metrics_port == 8080

    @pytest.mark.parametrize(
        "key,value",
        [
            ("ENABLE_REFERENCE_GRANT", "maybe"),
            ("METRICS_PORT", "http"),
            ("REQUEUE_DELAY_SECONDS", "soon"),
            ("K8S_RATE_LIMIT_PER_SECOND", "fast"),
            ("K8S_RATE_LIMIT_PER_SECOND", "0"),
            ("K8S_CACHE_TTL_SECONDS", "long"),
        ],
    )
    def test_invalid_values(self, key, value):
        with pytest.raises(ConfigurationError, match=key):
            OperatorConfig.from_env({key: value})

    def test_is_frozen(self):
        config = OperatorConfig()

        with pytest.raises(AttributeError):
            config.metrics_port = 1

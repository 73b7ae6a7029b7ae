"""Tests for error types and sanitization."""

from __future__ import annotations

from kubernetes.client.exceptions import ApiException

from hybrid_gateway_operator.gvk import KONG_ROUTE_GVK
from hybrid_gateway_operator.utils.errors import (
    ConflictError,
    NoGatewayFoundError,
    OperatorError,
    UnsupportedParentRefError,
    is_conflict,
    is_not_found,
    sanitize_error_message,
    sanitize_exception,
)


class TestErrorTypes:
    """Test cases for the error hierarchy."""

    def test_parent_ref_errors_share_a_base(self):
        assert issubclass(NoGatewayFoundError, UnsupportedParentRefError)
        assert issubclass(UnsupportedParentRefError, OperatorError)

    def test_conflict_error_names_object(self):
        cause = ApiException(status=409, reason="Conflict")
        error = ConflictError(KONG_ROUTE_GVK, "default", "r", cause)

        assert error.cause is cause
        assert "KongRoute" in str(error)
        assert "default/r" in str(error)

    def test_status_helpers(self):
        assert is_not_found(ApiException(status=404))
        assert is_conflict(ApiException(status=409))
        assert not is_conflict(ValueError("409"))


class TestSanitization:
    """Test cases for error sanitization."""

    def test_bearer_token(self):
        sanitized = sanitize_error_message("request failed: Authorization: Bearer abc.def.ghi")

        assert "abc.def.ghi" not in sanitized
        assert "[REDACTED]" in sanitized

    def test_sensitive_field(self):
        assert "hunter2" not in sanitize_error_message("password=hunter2")

    def test_plain_message_unchanged(self):
        assert sanitize_error_message("gateway default/gw not found") == "gateway default/gw not found"

    def test_sanitize_exception(self):
        assert "s3cr3t" not in sanitize_exception(RuntimeError("token: s3cr3t"))

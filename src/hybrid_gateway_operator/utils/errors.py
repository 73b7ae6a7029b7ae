"""Error types and sanitization utilities."""

from __future__ import annotations

import re
from typing import Any

from kubernetes.client.exceptions import ApiException


class OperatorError(Exception):
    """Base class for errors raised by the operator."""


class ConfigurationError(OperatorError):
    """Raised when the operator configuration is invalid."""


class ValidationError(OperatorError):
    """Raised for malformed input that must abort the current reconcile.

    Examples are an unparsable namespace selector on a listener or an unknown
    ``allowedRoutes.namespaces.from`` value.
    """


class TypeAssertionError(OperatorError):
    """Raised when a root object is not of the kind a converter expects."""


class UnsupportedParentRefError(OperatorError):
    """A parentRef points at a Gateway this controller does not serve."""


class NoGatewayFoundError(UnsupportedParentRefError):
    """The referenced Gateway does not exist."""


class NoGatewayClassFoundError(UnsupportedParentRefError):
    """The Gateway's GatewayClass does not exist."""


class NoGatewayControllerError(UnsupportedParentRefError):
    """The GatewayClass belongs to another controller."""


class ConflictError(OperatorError):
    """Raised when the API server rejected a write with a 409 conflict.

    The caller requeues; it is never resolved locally.
    """

    def __init__(self, gvk: Any, namespace: str, name: str, cause: Exception | None = None):
        self.gvk = gvk
        self.namespace = namespace
        self.name = name
        self.cause = cause
        super().__init__(f"conflict while applying {gvk} {namespace}/{name}: {cause}")


def is_not_found(error: Exception) -> bool:
    """Return True if the error is an API 404."""
    return isinstance(error, ApiException) and error.status == 404


def is_conflict(error: Exception) -> bool:
    """Return True if the error is an API 409."""
    return isinstance(error, ApiException) and error.status == 409


# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"bearer\s+([A-Za-z0-9\-_\.=]+)",
    r"authorization[:\s]+([^\s,;]+)",
    r"-----BEGIN [A-Z ]+-----([^-]+)",
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "password",
    "secret",
    "credentials",
    "token",
    "tls.key",
    "client-key-data",
}


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove sensitive information.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message

    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, "[REDACTED]", sanitized, flags=re.IGNORECASE)

    for field in SENSITIVE_FIELDS:
        sanitized = re.sub(
            rf"{re.escape(field)}[\"']?[:=\s]+([^\s,;\)]+)",
            f"{field}: [REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: Exception) -> str:
    """Sanitize exception message.

    Args:
        error: Exception object

    Returns:
        Sanitized error message
    """
    return sanitize_error_message(str(error))

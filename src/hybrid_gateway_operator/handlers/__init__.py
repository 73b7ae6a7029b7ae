"""Handler modules for watched resources."""

# Import handlers to register them - all handlers register themselves via @kopf decorators
from . import httproute  # noqa: F401
from . import service  # noqa: F401

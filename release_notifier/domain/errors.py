from __future__ import annotations


class ConfigurationError(Exception):
    """Startup configuration is missing or malformed. The process must not start."""


class FormatError(ConfigurationError):
    """A configured outbound endpoint URL does not have the webhook shape."""


class RequestSyntaxError(Exception):
    """The request body is not valid JSON."""

    kind = "SyntaxError"


class ValidationError(Exception):
    """A request body violates the entity schema.

    Carries the offending wire field and the violated constraint
    (``required``, ``type`` or ``url``).
    """

    kind = "ValidationError"

    def __init__(self, field: str, constraint: str, message: str):
        super().__init__(message)
        self.field = field
        self.constraint = constraint


class AuthenticationError(Exception):
    kind = "Unauthorized"


class DeliveryError(Exception):
    """Outbound message delivery failed. Never surfaced to the inbound request."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

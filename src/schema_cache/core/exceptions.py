"""Standardized exception hierarchy for the schema registry cache."""

from typing import Any


class SchemaCacheError(Exception):
    """Base exception for all schema cache errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransientError(SchemaCacheError):
    """Errors that may succeed if the caller tries again."""

    pass


class TransportError(TransientError):
    """Registry could not be reached (DNS, connection refused, TLS, timeout)."""

    pass


class PermanentError(SchemaCacheError):
    """Errors that will not succeed on retry."""

    pass


class RegistryError(PermanentError):
    """Registry answered with a non-2xx status.

    The HTTP status and the registry's own ``error_code`` are preserved for
    caller diagnostics.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code
        self.error_code = error_code


class NotFoundError(RegistryError):
    """Subject, version or schema id does not exist (404)."""

    pass


class ConflictError(RegistryError):
    """Schema is incompatible with the subject's evolution rules (409)."""

    pass


class CodecError(PermanentError):
    """Schema definition could not be compiled into a codec."""

    pass


class SerializationError(PermanentError):
    """A value or payload could not be encoded or decoded."""

    pass


class ConfigurationError(PermanentError):
    """Missing or invalid configuration."""

    pass

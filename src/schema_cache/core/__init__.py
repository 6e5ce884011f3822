from .exceptions import (
    CodecError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
    PermanentError,
    RegistryError,
    SchemaCacheError,
    SerializationError,
    TransientError,
    TransportError,
)

__all__ = [
    "SchemaCacheError",
    "TransientError",
    "TransportError",
    "PermanentError",
    "RegistryError",
    "NotFoundError",
    "ConflictError",
    "CodecError",
    "SerializationError",
    "ConfigurationError",
]

"""Caching schema registry client for event producers and consumers."""

from .core.exceptions import (
    CodecError,
    ConflictError,
    NotFoundError,
    RegistryError,
    SchemaCacheError,
    SerializationError,
    TransportError,
)
from .registry.models import CompatibilityResult, Schema, SchemaReference, SchemaType
from .codecs import Codec, CodecFactory
from .registry import SchemaCache, SchemaRegistryClient, Transport
from .settings import RegistrySettings, get_settings

__all__ = [
    "Codec",
    "CodecError",
    "CodecFactory",
    "CompatibilityResult",
    "ConflictError",
    "NotFoundError",
    "RegistryError",
    "RegistrySettings",
    "Schema",
    "SchemaCache",
    "SchemaCacheError",
    "SchemaReference",
    "SchemaRegistryClient",
    "SchemaType",
    "SerializationError",
    "TransportError",
    "Transport",
    "get_settings",
]

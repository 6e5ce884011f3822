from .models import (
    CompatibilityResult,
    Schema,
    SchemaReference,
    SchemaType,
    normalize_schema_text,
)
from .transport import Transport
from .cache import KeyedLocks, SchemaCache
from .client import SchemaRegistryClient

__all__ = [
    "CompatibilityResult",
    "KeyedLocks",
    "Schema",
    "SchemaCache",
    "SchemaReference",
    "SchemaRegistryClient",
    "SchemaType",
    "Transport",
    "normalize_schema_text",
]

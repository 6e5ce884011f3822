import logging
from collections.abc import Sequence
from typing import Any

from schema_cache.cache_logging import log_subject_context
from schema_cache.codecs.base import CodecFactory
from schema_cache.codecs.framing import (
    PROTOBUF_FIRST_MESSAGE,
    frame,
    split_message_indexes,
    unframe,
)
from schema_cache.core.exceptions import SerializationError
from schema_cache.registry.cache import SchemaCache
from schema_cache.registry.decoder import (
    encode_schema_request,
    parse_compatibility,
    parse_int_list,
    parse_str_list,
)
from schema_cache.registry.models import (
    CompatibilityResult,
    Schema,
    SchemaReference,
    SchemaType,
)
from schema_cache.registry.transport import Transport, quote_subject
from schema_cache.settings import RegistrySettings

logger = logging.getLogger(__name__)


class SchemaRegistryClient:
    """Schema registry client with caching and per-schema codecs.

    Every Schema returned already carries a compiled codec unless codec
    creation is disabled. Each client owns its cache; independent clients in
    the same process share nothing.

    Usage:
        settings = RegistrySettings(urls="http://schema-registry:8081")
        with SchemaRegistryClient.from_settings(settings) as client:
            schema = client.get_latest_version("trips-value")
            payload = client.encode("trips-value", {"trip_id": "t-1"})
            event = client.decode(payload)
    """

    def __init__(
        self,
        transport: Transport,
        cache: SchemaCache | None = None,
        codecs_enabled: bool = True,
    ) -> None:
        self._transport = transport
        self.cache = cache or SchemaCache(transport)
        self.codecs_enabled = codecs_enabled

    @classmethod
    def from_settings(
        cls,
        settings: RegistrySettings,
        codec_factory: CodecFactory | None = None,
    ) -> "SchemaRegistryClient":
        transport = Transport.from_settings(settings)
        cache = SchemaCache(
            transport,
            codec_factory=codec_factory,
            cache_responses=settings.cache_responses,
            cache_not_found=settings.cache_not_found,
            latest_refresh=settings.latest_refresh,
        )
        logger.info(
            "Schema registry client initialized",
            extra={"url": settings.urls},
        )
        return cls(transport, cache, codecs_enabled=settings.codecs_enabled)

    def _ready(self, schema: Schema) -> Schema:
        if self.codecs_enabled:
            self.cache.attach_codec(schema)
        return schema

    def get_schema(self, schema_id: int) -> Schema:
        """Get schema by id, using cache if available."""
        return self._ready(self.cache.resolve_by_id(schema_id))

    def get_latest_version(self, subject: str, refresh: bool | None = None) -> Schema:
        """Get the latest schema version for a subject."""
        return self._ready(self.cache.resolve_latest(subject, refresh=refresh))

    def get_version(self, subject: str, version: int) -> Schema:
        return self._ready(self.cache.resolve_by_version(subject, version))

    def register_schema(
        self,
        subject: str,
        schema_str: str,
        schema_type: SchemaType = SchemaType.AVRO,
        references: Sequence[SchemaReference] = (),
    ) -> Schema:
        """Register a schema under a subject, reusing a cached registration if known."""
        with log_subject_context(subject):
            return self._ready(
                self.cache.register_or_reuse(subject, schema_str, schema_type, references)
            )

    def lookup_schema(
        self,
        subject: str,
        schema_str: str,
        schema_type: SchemaType = SchemaType.AVRO,
        references: Sequence[SchemaReference] = (),
    ) -> Schema:
        """Find the registered version of a definition under a subject."""
        return self._ready(self.cache.lookup(subject, schema_str, schema_type, references))

    def check_compatibility(
        self,
        subject: str,
        schema_str: str,
        schema_type: SchemaType = SchemaType.AVRO,
        version: int | str = "latest",
        references: Sequence[SchemaReference] = (),
        verbose: bool = False,
    ) -> CompatibilityResult:
        """Check if a new schema is compatible with a registered version. Never cached."""
        with log_subject_context(subject):
            data = self._transport.request(
                "POST",
                f"/compatibility/subjects/{quote_subject(subject)}/versions/{version}",
                body=encode_schema_request(schema_str, schema_type, tuple(references)),
                params={"verbose": "true"} if verbose else None,
            )
        return parse_compatibility(data)

    def delete_subject(self, subject: str, permanent: bool = False) -> list[int]:
        """Delete a subject and return the versions the registry removed."""
        with log_subject_context(subject):
            data = self._transport.request(
                "DELETE",
                f"/subjects/{quote_subject(subject)}",
                params={"permanent": "true"} if permanent else None,
            )
            self.cache.invalidate_subject(subject)
            versions = parse_int_list(data)
            logger.info(f"Deleted subject {subject} versions {versions}")
        return versions

    def delete_version(self, subject: str, version: int, permanent: bool = False) -> int:
        with log_subject_context(subject, version=version):
            data = self._transport.request(
                "DELETE",
                f"/subjects/{quote_subject(subject)}/versions/{version}",
                params={"permanent": "true"} if permanent else None,
            )
            self.cache.invalidate_subject_version(subject, version)
            logger.info(f"Deleted {subject} version {version}")
        return int(data)

    def get_subjects(self) -> list[str]:
        return parse_str_list(self._transport.request("GET", "/subjects"))

    def get_versions(self, subject: str) -> list[int]:
        return parse_int_list(
            self._transport.request("GET", f"/subjects/{quote_subject(subject)}/versions")
        )

    def encode(self, subject: str, value: Any, schema_id: int | None = None) -> bytes:
        """Encode ``value`` with the subject's latest schema (or ``schema_id``) and frame it."""
        if schema_id is None:
            schema = self.cache.resolve_latest(subject)
        else:
            schema = self.cache.resolve_by_id(schema_id)
        codec = self.cache.attach_codec(schema)

        payload = codec.encode(value)
        if schema.schema_type == SchemaType.PROTOBUF:
            payload = PROTOBUF_FIRST_MESSAGE + payload
        return frame(schema.id, payload)

    def decode(self, data: bytes) -> Any:
        """Decode a framed message using the schema named by its embedded id."""
        schema_id, payload = unframe(data)
        schema = self.cache.resolve_by_id(schema_id)
        codec = self.cache.attach_codec(schema)

        if schema.schema_type == SchemaType.PROTOBUF:
            indexes, payload = split_message_indexes(payload)
            if indexes != [0]:
                raise SerializationError(
                    f"Only the first message type is supported, got index path {indexes}",
                    details={"schema_id": schema_id},
                )
        return codec.decode(payload)

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> "SchemaRegistryClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

import io
import json
from collections.abc import Sequence
from typing import Any

import fastavro
from fastavro.schema import SchemaParseException, UnknownType

from schema_cache.core.exceptions import CodecError, SerializationError
from schema_cache.registry.models import SchemaType

from .base import Codec


class AvroCodec(Codec):
    """Schemaless Avro binary and Avro JSON encoding via fastavro."""

    schema_type = SchemaType.AVRO

    def __init__(self, parsed_schema: Any):
        self.parsed_schema = parsed_schema

    def encode(self, value: Any) -> bytes:
        buffer = io.BytesIO()
        try:
            fastavro.schemaless_writer(buffer, self.parsed_schema, value)
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            raise SerializationError(f"Value does not match Avro schema: {e}") from e
        return buffer.getvalue()

    def decode(self, data: bytes) -> Any:
        try:
            return fastavro.schemaless_reader(io.BytesIO(data), self.parsed_schema, None)
        except (EOFError, ValueError, TypeError, IndexError, UnicodeDecodeError) as e:
            raise SerializationError(f"Payload is not valid Avro for this schema: {e}") from e

    def encode_json(self, value: Any) -> str:
        buffer = io.StringIO()
        try:
            fastavro.json_writer(buffer, self.parsed_schema, [value])
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            raise SerializationError(f"Value does not match Avro schema: {e}") from e
        return buffer.getvalue().strip()

    def decode_json(self, text: str) -> Any:
        try:
            records = list(fastavro.json_reader(io.StringIO(text), self.parsed_schema))
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            raise SerializationError(f"Text is not valid Avro JSON for this schema: {e}") from e
        if len(records) != 1:
            raise SerializationError(f"Expected one Avro JSON record, got {len(records)}")
        return records[0]


def compile_avro(text: str, references: Sequence[tuple[str, str]] = ()) -> AvroCodec:
    named_schemas: dict[str, Any] = {}
    try:
        for _name, ref_text in references:
            fastavro.parse_schema(json.loads(ref_text), named_schemas=named_schemas)
        parsed = fastavro.parse_schema(json.loads(text), named_schemas=named_schemas)
    except (
        ValueError,
        TypeError,
        KeyError,
        AttributeError,
        SchemaParseException,
        UnknownType,
    ) as e:
        raise CodecError(f"Invalid Avro schema: {e}") from e
    return AvroCodec(parsed)

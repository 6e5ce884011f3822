import json
from collections.abc import Sequence
from typing import Any

import jsonschema
from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for
from referencing import Registry, Resource
from referencing.exceptions import Unresolvable
from referencing.jsonschema import DRAFT7

from schema_cache.core.exceptions import CodecError, SerializationError
from schema_cache.registry.models import SchemaType

from .base import Codec


class JSONSchemaCodec(Codec):
    """Validates values against a JSON Schema and encodes them as UTF-8 JSON."""

    schema_type = SchemaType.JSON

    def __init__(self, validator: Any):
        self.validator = validator

    def validate(self, value: Any) -> None:
        try:
            self.validator.validate(value)
        except jsonschema.ValidationError as e:
            raise SerializationError(
                f"Value does not match JSON schema: {e.message}",
                details={"path": list(e.absolute_path)},
            ) from e
        except Unresolvable as e:
            raise SerializationError(f"Unresolvable reference in JSON schema: {e}") from e

    def encode(self, value: Any) -> bytes:
        return self.encode_json(value).encode("utf-8")

    def decode(self, data: bytes) -> Any:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SerializationError(f"Payload is not UTF-8 JSON: {e}") from e
        return self.decode_json(text)

    def encode_json(self, value: Any) -> str:
        self.validate(value)
        return json.dumps(value, separators=(",", ":"))

    def decode_json(self, text: str) -> Any:
        try:
            value = json.loads(text)
        except ValueError as e:
            raise SerializationError(f"Payload is not valid JSON: {e}") from e
        self.validate(value)
        return value


def compile_json_schema(
    text: str, references: Sequence[tuple[str, str]] = ()
) -> JSONSchemaCodec:
    try:
        schema = json.loads(text)
        resources = [
            (name, Resource.from_contents(json.loads(ref_text), default_specification=DRAFT7))
            for name, ref_text in references
        ]
    except ValueError as e:
        raise CodecError(f"JSON schema is not valid JSON: {e}") from e
    if not isinstance(schema, dict | bool):
        raise CodecError("JSON schema must be an object or a boolean")

    validator_class = validator_for(schema, default=jsonschema.Draft7Validator)
    try:
        validator_class.check_schema(schema)
    except SchemaError as e:
        raise CodecError(f"Invalid JSON schema: {e.message}") from e

    registry: Registry = Registry().with_resources(resources)
    return JSONSchemaCodec(validator_class(schema, registry=registry))

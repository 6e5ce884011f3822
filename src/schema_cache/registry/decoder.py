"""Parsing of schema registry JSON payloads into typed values.

Pure functions: no caching and no network. Optional fields are tolerated so
that an id-only response (no subject/version) decodes the same way as a full
subject-version record.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from schema_cache.core.exceptions import RegistryError
from schema_cache.registry.models import (
    CompatibilityResult,
    Schema,
    SchemaReference,
    SchemaType,
)


class ReferencePayload(BaseModel):
    name: str
    subject: str
    version: int


class SchemaPayload(BaseModel):
    """Body of ``GET /schemas/ids/{id}``."""

    model_config = ConfigDict(populate_by_name=True)

    schema_text: str = Field(alias="schema")
    schema_type: SchemaType = Field(default=SchemaType.AVRO, alias="schemaType")
    references: list[ReferencePayload] = Field(default_factory=list)


class SubjectVersionPayload(SchemaPayload):
    """Body of ``GET /subjects/{subject}/versions/{version}`` and ``POST /subjects/{subject}``."""

    subject: str
    version: int = Field(gt=0)
    id: int


class RegisteredIdPayload(BaseModel):
    """Body of ``POST /subjects/{subject}/versions``.

    Registries return only the id; newer ones may also echo subject and version.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int
    subject: str | None = None
    version: int | None = Field(default=None, gt=0)
    schema_text: str | None = Field(default=None, alias="schema")
    schema_type: SchemaType | None = Field(default=None, alias="schemaType")


class CompatibilityPayload(BaseModel):
    is_compatible: bool
    messages: list[str] = Field(default_factory=list)


_INT_LIST = TypeAdapter(list[int])
_STR_LIST = TypeAdapter(list[str])


def _references(payload: SchemaPayload) -> tuple[SchemaReference, ...]:
    return tuple(SchemaReference(r.name, r.subject, r.version) for r in payload.references)


def _malformed(kind: str, error: PydanticValidationError) -> RegistryError:
    return RegistryError(
        f"Malformed {kind} response from schema registry",
        details={"errors": error.errors(include_url=False)},
    )


def parse_schema_by_id(data: Any, schema_id: int) -> Schema:
    try:
        payload = SchemaPayload.model_validate(data)
    except PydanticValidationError as e:
        raise _malformed("schema", e) from e
    return Schema(
        id=schema_id,
        text=payload.schema_text,
        schema_type=payload.schema_type,
        references=_references(payload),
    )


def parse_subject_version(data: Any) -> Schema:
    try:
        payload = SubjectVersionPayload.model_validate(data)
    except PydanticValidationError as e:
        raise _malformed("subject version", e) from e
    return Schema(
        id=payload.id,
        text=payload.schema_text,
        schema_type=payload.schema_type,
        subject=payload.subject,
        version=payload.version,
        references=_references(payload),
    )


def parse_registered(
    data: Any,
    subject: str,
    text: str,
    schema_type: SchemaType,
    references: tuple[SchemaReference, ...] = (),
) -> Schema:
    """Build the Schema for a register call from the request and the registry's answer."""
    try:
        payload = RegisteredIdPayload.model_validate(data)
    except PydanticValidationError as e:
        raise _malformed("register", e) from e
    return Schema(
        id=payload.id,
        text=payload.schema_text or text,
        schema_type=payload.schema_type or schema_type,
        subject=payload.subject or subject,
        version=payload.version,
        references=references,
    )


def parse_compatibility(data: Any) -> CompatibilityResult:
    try:
        payload = CompatibilityPayload.model_validate(data)
    except PydanticValidationError as e:
        raise _malformed("compatibility", e) from e
    return CompatibilityResult(is_compatible=payload.is_compatible, messages=payload.messages)


def parse_int_list(data: Any) -> list[int]:
    try:
        return _INT_LIST.validate_python(data)
    except PydanticValidationError as e:
        raise _malformed("integer list", e) from e


def parse_str_list(data: Any) -> list[str]:
    try:
        return _STR_LIST.validate_python(data)
    except PydanticValidationError as e:
        raise _malformed("string list", e) from e


def encode_schema_request(
    text: str,
    schema_type: SchemaType,
    references: tuple[SchemaReference, ...] = (),
) -> dict[str, Any]:
    """Request body for register, lookup and compatibility calls."""
    body: dict[str, Any] = {"schema": text}
    if schema_type != SchemaType.AVRO:
        body["schemaType"] = schema_type.value
    if references:
        body["references"] = [
            {"name": r.name, "subject": r.subject, "version": r.version} for r in references
        ]
    return body

import json
import re
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from schema_cache.core.exceptions import CodecError

if TYPE_CHECKING:
    from schema_cache.codecs.base import Codec


class SchemaType(str, Enum):
    """Schema formats supported by the registry."""

    AVRO = "AVRO"
    JSON = "JSON"
    PROTOBUF = "PROTOBUF"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SchemaReference:
    """Reference from one schema to a named schema registered under another subject."""

    name: str
    subject: str
    version: int


@dataclass
class _CodecSlot:
    """Holder for a compiled codec, shared by every cached instance of one schema id."""

    codec: "Codec | None" = None
    lock: threading.Lock = field(default_factory=threading.Lock)


@dataclass(eq=False)
class Schema:
    """A schema known to the registry.

    Identity is the registry-assigned id. Subject and version are absent when
    the schema was fetched by id alone. Everything except the codec is fixed
    at construction; the codec is attached at most once.
    """

    id: int
    text: str
    schema_type: SchemaType = SchemaType.AVRO
    subject: str | None = None
    version: int | None = None
    references: tuple[SchemaReference, ...] = ()
    _slot: _CodecSlot = field(default_factory=_CodecSlot, repr=False)

    @property
    def codec(self) -> "Codec | None":
        return self._slot.codec

    def codec_once(self, build: Callable[[], "Codec"]) -> "Codec":
        """Return the attached codec, building it under the slot lock on first use.

        Exactly one caller runs ``build``; concurrent callers wait and reuse its
        result. If ``build`` raises, nothing is attached and the next call tries again.
        """
        slot = self._slot
        codec = slot.codec
        if codec is not None:
            return codec
        with slot.lock:
            codec = slot.codec
            if codec is None:
                codec = build()
                slot.codec = codec
        return codec

    def adopt_codec(self, other: "Schema") -> None:
        """Share the codec slot of another instance of the same schema id.

        A compilation already running for ``other`` then also serves this
        instance. Never blocks; an instance that already has a codec keeps it.
        """
        if other.id != self.id or other._slot is self._slot or self._slot.codec is not None:
            return
        self._slot = other._slot

    @property
    def normalized_text(self) -> str:
        return normalize_schema_text(self.text, self.schema_type)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Schema):
            return NotImplemented
        return (
            self.id == other.id
            and self.subject == other.subject
            and self.version == other.version
            and self.schema_type == other.schema_type
            and self.normalized_text == other.normalized_text
            and self.references == other.references
        )

    def __hash__(self) -> int:
        return hash((self.id, self.subject, self.version))

    def encode(self, value: object) -> bytes:
        return self._require_codec().encode(value)

    def decode(self, data: bytes) -> object:
        return self._require_codec().decode(data)

    def encode_json(self, value: object) -> str:
        return self._require_codec().encode_json(value)

    def decode_json(self, text: str) -> object:
        return self._require_codec().decode_json(text)

    def _require_codec(self) -> "Codec":
        codec = self._slot.codec
        if codec is None:
            raise CodecError(
                f"No codec attached to schema {self.id}",
                details={"schema_id": self.id, "subject": self.subject},
            )
        return codec


@dataclass
class CompatibilityResult:
    is_compatible: bool
    messages: list[str] = field(default_factory=list)


_WHITESPACE = re.compile(r"\s+")


def normalize_schema_text(text: str, schema_type: SchemaType = SchemaType.AVRO) -> str:
    """Canonical form of a schema definition used as a cache key.

    JSON-based definitions (AVRO, JSON) are re-serialized with sorted keys and
    no insignificant whitespace; anything else has whitespace runs collapsed.
    """
    if schema_type in (SchemaType.AVRO, SchemaType.JSON):
        try:
            return json.dumps(json.loads(text), sort_keys=True, separators=(",", ":"))
        except ValueError:
            pass
    return _WHITESPACE.sub(" ", text).strip()

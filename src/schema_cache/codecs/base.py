import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any

from schema_cache.core.exceptions import CodecError
from schema_cache.metrics import record_compilation
from schema_cache.registry.models import SchemaType

logger = logging.getLogger(__name__)


class Codec(ABC):
    """Compiled encode/decode routine for one schema definition."""

    schema_type: SchemaType

    @abstractmethod
    def encode(self, value: Any) -> bytes: ...

    @abstractmethod
    def decode(self, data: bytes) -> Any: ...

    @abstractmethod
    def encode_json(self, value: Any) -> str:
        """Encode a native value as the schema type's textual JSON form."""

    @abstractmethod
    def decode_json(self, text: str) -> Any: ...


# Compiles (schema text, [(reference name, reference text), ...]) into a Codec.
# Implementations raise CodecError for definitions they cannot compile.
CodecCompiler = Callable[[str, Sequence[tuple[str, str]]], Codec]


class CodecFactory:
    """Dispatches codec compilation to one compiler per schema type."""

    def __init__(self, compilers: dict[SchemaType, CodecCompiler] | None = None) -> None:
        self._compilers: dict[SchemaType, CodecCompiler] = dict(compilers or {})

    @classmethod
    def default(cls) -> "CodecFactory":
        from .avro import compile_avro
        from .json_schema import compile_json_schema
        from .protobuf import compile_protobuf

        return cls(
            {
                SchemaType.AVRO: compile_avro,
                SchemaType.JSON: compile_json_schema,
                SchemaType.PROTOBUF: compile_protobuf,
            }
        )

    def register(self, schema_type: SchemaType, compiler: CodecCompiler) -> None:
        self._compilers[schema_type] = compiler

    def supports(self, schema_type: SchemaType) -> bool:
        return schema_type in self._compilers

    def compile(
        self,
        text: str,
        schema_type: SchemaType,
        references: Sequence[tuple[str, str]] = (),
    ) -> Codec:
        compiler = self._compilers.get(schema_type)
        if compiler is None:
            raise CodecError(
                f"No codec available for schema type {schema_type}",
                details={"schema_type": str(schema_type)},
            )

        try:
            codec = compiler(text, references)
        except CodecError:
            record_compilation(str(schema_type), ok=False)
            raise
        record_compilation(str(schema_type), ok=True)
        logger.debug(f"Compiled {schema_type} codec", extra={"schema_type": str(schema_type)})
        return codec

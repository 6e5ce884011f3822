"""Protobuf codec built from serialized file descriptors.

The registry hands out protobuf schemas either as ``.proto`` source or, with
``format=serialized``, as a base64 ``FileDescriptorProto``. Only the serialized
form can be compiled without a protoc toolchain; the first message type of the
file is the record type, as in the Confluent default message index ``[0]``.
"""

import base64
import binascii
from collections.abc import Sequence
from typing import Any

from google.protobuf import descriptor_pb2, descriptor_pool, json_format, message_factory
from google.protobuf.message import DecodeError, Message

from schema_cache.core.exceptions import CodecError, SerializationError
from schema_cache.registry.models import SchemaType

from .base import Codec


class ProtobufCodec(Codec):
    schema_type = SchemaType.PROTOBUF

    def __init__(self, message_class: type[Message]):
        self.message_class = message_class

    def _to_message(self, value: Any) -> Message:
        if isinstance(value, self.message_class):
            return value
        try:
            return json_format.ParseDict(value, self.message_class())
        except (json_format.ParseError, TypeError, AttributeError) as e:
            raise SerializationError(f"Value does not match protobuf message: {e}") from e

    def encode(self, value: Any) -> bytes:
        result: bytes = self._to_message(value).SerializeToString()
        return result

    def decode(self, data: bytes) -> Any:
        try:
            message = self.message_class.FromString(data)
        except DecodeError as e:
            raise SerializationError(f"Payload is not a valid protobuf message: {e}") from e
        return json_format.MessageToDict(message, preserving_proto_field_name=True)

    def encode_json(self, value: Any) -> str:
        result: str = json_format.MessageToJson(
            self._to_message(value), preserving_proto_field_name=True, indent=None
        )
        return result

    def decode_json(self, text: str) -> Any:
        try:
            message = json_format.Parse(text, self.message_class())
        except json_format.ParseError as e:
            raise SerializationError(f"Text is not valid protobuf JSON: {e}") from e
        return json_format.MessageToDict(message, preserving_proto_field_name=True)


def _file_descriptor(text: str) -> descriptor_pb2.FileDescriptorProto:
    try:
        raw = base64.b64decode(text.strip(), validate=True)
        return descriptor_pb2.FileDescriptorProto.FromString(raw)
    except (binascii.Error, ValueError, DecodeError) as e:
        raise CodecError(
            "Protobuf schema must be a base64 serialized FileDescriptorProto "
            "(fetch with format=serialized)"
        ) from e


def compile_protobuf(text: str, references: Sequence[tuple[str, str]] = ()) -> ProtobufCodec:
    pool = descriptor_pool.DescriptorPool()
    try:
        for _name, ref_text in references:
            pool.Add(_file_descriptor(ref_text))
        file_proto = _file_descriptor(text)
        if not file_proto.message_type:
            raise CodecError(f"Protobuf file {file_proto.name!r} declares no message types")
        pool.Add(file_proto)
        full_name = file_proto.message_type[0].name
        if file_proto.package:
            full_name = f"{file_proto.package}.{full_name}"
        descriptor = pool.FindMessageTypeByName(full_name)
    except (TypeError, KeyError) as e:
        raise CodecError(f"Invalid protobuf descriptor: {e}") from e
    return ProtobufCodec(message_factory.GetMessageClass(descriptor))

"""Confluent wire framing: magic byte, big-endian schema id, payload."""

import struct

from schema_cache.core.exceptions import SerializationError

MAGIC_BYTE = 0
_HEADER = struct.Struct(">bI")
_MAX_SCHEMA_ID = 2**32 - 1


def frame(schema_id: int, payload: bytes) -> bytes:
    if not 0 <= schema_id <= _MAX_SCHEMA_ID:
        raise SerializationError(
            f"Schema id {schema_id} does not fit the 4-byte framing header",
            details={"schema_id": schema_id},
        )
    return _HEADER.pack(MAGIC_BYTE, schema_id) + payload


def unframe(data: bytes) -> tuple[int, bytes]:
    """Split a framed message into its schema id and payload."""
    if len(data) < _HEADER.size:
        raise SerializationError(
            f"Message too short for schema registry framing: {len(data)} bytes"
        )
    magic, schema_id = _HEADER.unpack_from(data)
    if magic != MAGIC_BYTE:
        raise SerializationError(f"Unknown magic byte {magic}, expected {MAGIC_BYTE}")
    return schema_id, data[_HEADER.size :]


# Protobuf payloads carry the index path of the message type after the header.
# A single zero byte is the short form of [0], the first message in the file.
PROTOBUF_FIRST_MESSAGE = b"\x00"


def _read_zigzag(data: bytes, pos: int) -> tuple[int, int]:
    result = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise SerializationError("Truncated protobuf message index")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            break
        shift += 7
    return (result >> 1) ^ -(result & 1), pos


def split_message_indexes(payload: bytes) -> tuple[list[int], bytes]:
    """Split a protobuf payload into its message index path and message bytes."""
    count, pos = _read_zigzag(payload, 0)
    if count == 0:
        return [0], payload[pos:]
    indexes = []
    for _ in range(count):
        index, pos = _read_zigzag(payload, pos)
        indexes.append(index)
    return indexes, payload[pos:]

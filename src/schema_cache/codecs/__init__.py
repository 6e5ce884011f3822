from .base import Codec, CodecCompiler, CodecFactory
from .framing import MAGIC_BYTE, PROTOBUF_FIRST_MESSAGE, frame, split_message_indexes, unframe

__all__ = [
    "Codec",
    "CodecCompiler",
    "CodecFactory",
    "MAGIC_BYTE",
    "PROTOBUF_FIRST_MESSAGE",
    "frame",
    "split_message_indexes",
    "unframe",
]

"""Text codec: fallback extraction, fragment decoding and encoding."""

from .decoder import MemoryDecoder
from .encoder import MemoryEncoder, to_wire
from .fallback import DecodeAttempt, FallbackDecoder
from .manager import MemoryCodec

__all__ = [
    "DecodeAttempt",
    "FallbackDecoder",
    "MemoryCodec",
    "MemoryDecoder",
    "MemoryEncoder",
    "to_wire",
]

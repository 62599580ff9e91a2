"""JSON-only serialization helpers for the beacon cache.

The durable blob and every wire payload handled here are UTF-8 JSON. Byte
arrays travel as base64 strings; the helpers below convert the various
shapes in which byte fields reach the cache back into ``bytes``.
"""

from __future__ import annotations

import base64
import binascii
import json
from collections.abc import Mapping
from typing import Any

import numpy as np
import structlog

logger = structlog.get_logger()


def serialize(obj: Any) -> bytes:
    """Serialize an object to bytes using JSON (utf-8).

    Callers should pre-convert complex types to JSON friendly structures; only
    numpy values, tuples, bytes and objects exposing ``isoformat`` are handled
    here.
    """
    return json.dumps(obj, default=_json_default, separators=(",", ":")).encode("utf-8")


def deserialize(raw: bytes | None) -> Any:
    """Deserialize bytes to a Python object.

    Parse bytes as UTF-8 JSON. Raises ValueError when data is not valid JSON.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError(f"Data is not valid JSON: {exc}") from exc


def _json_default(o: Any):
    """Fallback serializer for JSON for a few common types."""
    if hasattr(o, "isoformat"):
        return o.isoformat()
    if isinstance(o, np.ndarray):
        return o.tolist()
    if isinstance(o, np.generic):
        return o.item()
    if isinstance(o, bytes | bytearray):
        return bytes_to_base64(bytes(o))
    if isinstance(o, set | frozenset):
        return sorted(o)
    raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")


def bytes_to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def to_bytes(value: Any) -> bytes:
    """Normalize a byte field into ``bytes``.

    Accepted shapes: ``bytes``/``bytearray``/``memoryview``, a base64 string,
    a buffer wrapper ``{"type": "Buffer", "data": [...]}``, a plain list of
    integers, or a numpy ``uint8`` array. Anything else yields ``b""``.
    """
    if value is None:
        return b""
    if isinstance(value, bytes):
        return value
    if isinstance(value, bytearray | memoryview):
        return bytes(value)
    if isinstance(value, np.ndarray):
        return value.astype(np.uint8).tobytes()
    if isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            logger.warning("Byte field is not valid base64", length=len(value))
            return b""
    if isinstance(value, Mapping):
        if value.get("type") == "Buffer" and isinstance(value.get("data"), list):
            return _int_list_to_bytes(value["data"])
        logger.warning("Unrecognised byte wrapper", keys=sorted(map(str, value.keys())))
        return b""
    if isinstance(value, list | tuple):
        return _int_list_to_bytes(value)
    logger.warning("Unsupported byte field representation", kind=type(value).__name__)
    return b""


def _int_list_to_bytes(items: list | tuple) -> bytes:
    try:
        return bytes(int(x) & 0xFF for x in items)
    except (TypeError, ValueError):
        logger.warning("Byte array contains non-integer items")
        return b""

"""Structural text extraction from beacon-like payloads.

Each attempt inspects a flat record (a mapping or a :class:`Beacon`) and
returns text or ``None``. Attempts run in declaration order of
:class:`DecodeAttempt`; the first non-empty result wins.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
import struct
from collections.abc import Mapping
from enum import Enum
from typing import Any

import structlog

from ..models import Beacon, EncodedMemory
from ..serialization import to_bytes

logger = structlog.get_logger()

MAX_SIGNATURE_TEXT = 10_000
MIN_HEURISTIC_LENGTH = 10

# Structural keys never treated as text by the heuristic scan.
SKIP_FIELDS = frozenset(
    {
        "beacon_id",
        "user_id",
        "author_id",
        "beacon_type",
        "type",
        "node_id",
        "fingerprint",
        "signature",
        "epoch",
        "prime_indices",
        "created_at",
    }
)

_PRINTABLE = re.compile(r"^[\x20-\x7e\s]*$")
_HEX_DIGEST = re.compile(r"^[a-f0-9]{32,}$")
_IDENTIFIER = re.compile(r"^[a-z_]+$")
_LETTER_OR_SPACE = re.compile(r"[a-zA-Z\s]")


class DecodeAttempt(Enum):
    EXACT_TEXT = "exact_text"
    METADATA_TEXT = "metadata_text"
    CONTENT_FIELD = "content_field"
    BASE64_CONTENT = "base64_content"
    SIGNATURE_TEXT = "signature_text"
    HEURISTIC_SCAN = "heuristic_scan"


class FallbackDecoder:
    """Ordered chain of cheap text-recovery strategies."""

    def decode(self, data: Any) -> str | None:
        record = _as_record(data)
        if record is None:
            return None
        for attempt in DecodeAttempt:
            text = self.run(attempt, record)
            if text:
                logger.debug("Fallback decode succeeded", attempt=attempt.value)
                return text
        return None

    def run(self, attempt: DecodeAttempt, record: Mapping[str, Any]) -> str | None:
        match attempt:
            case DecodeAttempt.EXACT_TEXT:
                return _string(record.get("originalText"))
            case DecodeAttempt.METADATA_TEXT:
                return metadata_text(record.get("metadata"))
            case DecodeAttempt.CONTENT_FIELD:
                return _string(record.get("content")) or _string(record.get("data"))
            case DecodeAttempt.BASE64_CONTENT:
                return _base64_text(record.get("content_base64"))
            case DecodeAttempt.SIGNATURE_TEXT:
                return signature_text(record.get("signature"))
            case DecodeAttempt.HEURISTIC_SCAN:
                return _heuristic_scan(record)
        return None


def _as_record(data: Any) -> Mapping[str, Any] | None:
    if isinstance(data, Beacon | EncodedMemory):
        return data.as_record()
    if isinstance(data, Mapping):
        return data
    return None


def _string(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def metadata_text(metadata: Any) -> str | None:
    """``originalText`` embedded in a JSON metadata string."""
    if not isinstance(metadata, str):
        return None
    try:
        parsed = json.loads(metadata)
    except ValueError:
        return None
    if isinstance(parsed, dict):
        return _string(parsed.get("originalText"))
    return None


def _base64_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    try:
        decoded = base64.b64decode(value, validate=True).decode("latin-1")
    except (binascii.Error, ValueError):
        return None
    return decoded if decoded.strip() else None


def signature_text(signature: Any) -> str | None:
    """Text carried in a signature.

    The encoder writes ``u32le(length) + utf8(text) + identity``; older
    signatures are plain text and are accepted only when fully printable.
    """
    if isinstance(signature, bytes | bytearray):
        raw = bytes(signature)
    elif signature is None or isinstance(signature, str | int | float | bool):
        return None
    else:
        raw = to_bytes(signature)
    if len(raw) <= 4:
        return None

    (length,) = struct.unpack_from("<I", raw, 0)
    if 0 < length <= len(raw) - 4 and length < MAX_SIGNATURE_TEXT:
        text = raw[4 : 4 + length].decode("utf-8", errors="replace").strip()
        if text:
            return text

    whole = raw.decode("utf-8", errors="replace")
    if _PRINTABLE.match(whole) and whole.strip():
        return whole.strip()
    return None


def _heuristic_scan(record: Mapping[str, Any]) -> str | None:
    for key, value in record.items():
        if key in SKIP_FIELDS or not isinstance(value, str) or not value:
            continue
        if (value.startswith("{") and value.endswith("}")) or (
            value.startswith("[") and value.endswith("]")
        ):
            try:
                parsed = json.loads(value)
            except ValueError:
                parsed = None
            if isinstance(parsed, dict | list):
                logger.debug("Heuristic decode used JSON field", field=key)
                return value
        if (
            len(value) > MIN_HEURISTIC_LENGTH
            and _LETTER_OR_SPACE.search(value)
            and not _HEX_DIGEST.match(value)
            and not _IDENTIFIER.match(value)
            and (" " in value or '"' in value or ":" in value)
        ):
            logger.debug("Heuristic decode used text field", field=key)
            return value
    return None

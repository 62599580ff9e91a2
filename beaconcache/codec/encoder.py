"""Forward path from text to an encoded fragment and its wire form."""

from __future__ import annotations

import json
import math
import struct
import time
from collections import Counter
from typing import Any

import structlog

from ..exceptions import EncodingError
from ..interfaces.encoding import IEncodingProvider
from ..models import EncodedMemory, PrimeResonanceIdentity, ResonantFragment
from ..primes import prime_resonance

logger = structlog.get_logger()

IDENTITY_BYTES = 32


class MemoryEncoder:
    """Encodes text character by character into prime-keyed amplitudes.

    The signature produced here embeds the UTF-8 text behind a 4-byte
    little-endian length, which is what lets the fallback decoder recover
    the exact text later.
    """

    def __init__(self, provider: IEncodingProvider):
        self.provider = provider

    def encode(self, text: str, identity: PrimeResonanceIdentity | None) -> EncodedMemory:
        if identity is None:
            raise EncodingError("Cannot encode memory: identity not set")

        field = self.provider.create_field()
        spatial_entropy = _spatial_entropy(text)
        primes = self.provider.generate_primes(len(text) + 10)

        coeffs: dict[int, float] = {}
        for i, ch in enumerate(text):
            x = i * 0.1
            y = ord(ch) / 255.0
            entropy = spatial_entropy * (i + 1) / len(text)
            coeffs[primes[i]] = float(self.provider.encode_value(field, x, y, entropy))

        fragment = ResonantFragment(
            coeffs=coeffs,
            center=(len(text) / 2.0, _center_y(coeffs)),
            entropy=_amplitude_entropy(coeffs),
            prime_resonance=prime_resonance(coeffs),
            holographic_field=field,
        )
        fingerprint = struct.pack(
            "<4d",
            fragment.entropy,
            fragment.center[0],
            fragment.center[1],
            fragment.prime_resonance or 0.0,
        )
        text_bytes = text.encode("utf-8")
        signature = (
            struct.pack("<I", len(text_bytes))
            + text_bytes
            + identity.to_json().encode("utf-8")[:IDENTITY_BYTES]
        )
        logger.debug("Encoded memory", length=len(text), primes=len(coeffs))
        return EncodedMemory(
            fragment=fragment,
            index=list(coeffs),
            epoch=int(time.time() * 1000),
            fingerprint=fingerprint,
            signature=signature,
            original_text=text,
        )


def _spatial_entropy(text: str) -> float:
    """Character-frequency entropy normalized by log2(256)."""
    if not text:
        return 0.0
    total = len(text)
    entropy = -sum((n / total) * math.log2(n / total) for n in Counter(text).values())
    return entropy / 8.0


def _center_y(coeffs: dict[int, float]) -> float:
    weight = sum(a * a for a in coeffs.values())
    if weight <= 0:
        return 0.0
    return sum(p * a * a for p, a in coeffs.items()) / weight / 1000.0


def _amplitude_entropy(coeffs: dict[int, float]) -> float:
    total = sum(a * a for a in coeffs.values())
    if total == 0:
        return 0.0
    entropy = 0.0
    for a in coeffs.values():
        prob = a * a / total
        if prob > 0:
            entropy -= prob * math.log(prob)
    return entropy


def to_wire(encoded: EncodedMemory, **fields: Any) -> dict[str, Any]:
    """JSON-safe beacon payload for an encoded memory.

    Byte fields become integer lists and the basis is carried as a JSON
    ``prime_indices`` string. Coefficients and the field handle stay local.
    Extra keyword arguments (``beacon_id``, ``author_id``...) are merged in.
    """
    payload: dict[str, Any] = dict(fields)
    payload.update(
        {
            "index": list(encoded.index),
            "prime_indices": json.dumps(list(encoded.index), separators=(",", ":")),
            "epoch": encoded.epoch,
            "fingerprint": list(encoded.fingerprint),
            "signature": list(encoded.signature),
        }
    )
    if encoded.original_text:
        payload["originalText"] = encoded.original_text
    return payload

"""Coefficient-based decoding of beacons and resonant fragments."""

from __future__ import annotations

import math
import random
from collections.abc import Mapping
from typing import Any

import structlog

from ..interfaces.encoding import IEncodingProvider
from ..models import Beacon, EncodedMemory, ResonantFragment, parse_prime_indices
from ..primes import byte_entropy, prime_resonance
from ..serialization import to_bytes

logger = structlog.get_logger()

PRINTABLE_MIN = 32
PRINTABLE_MAX = 126


def js_round(value: float) -> int:
    """Round half up, matching the rounding used when the codes were produced."""
    return math.floor(value + 0.5)


def _printable(code: int) -> bool:
    return PRINTABLE_MIN <= code <= PRINTABLE_MAX


class MemoryDecoder:
    """Builds :class:`ResonantFragment` views and decodes them to text.

    ``provider`` backs :meth:`decode_with_holographic_field`; without one the
    holographic strategy is skipped.
    """

    def __init__(self, provider: IEncodingProvider | None = None, rng: random.Random | None = None):
        self.provider = provider
        self._rng = rng or random.Random()

    def to_resonant_fragment(self, data: Any) -> ResonantFragment:
        """Return the fragment view of ``data``.

        Fragments and fragment-shaped records pass through, beacon-shaped
        records are rebuilt from their basis and fingerprint, anything else
        becomes an empty fragment.
        """
        if isinstance(data, ResonantFragment):
            return data
        if isinstance(data, EncodedMemory):
            return data.fragment
        record = data.as_record() if isinstance(data, Beacon) else data
        if not isinstance(record, Mapping):
            return ResonantFragment()
        if all(k in record for k in ("coeffs", "center", "entropy")):
            return _fragment_from_record(record)
        if all(k in record for k in ("prime_indices", "fingerprint", "epoch")):
            return self._fragment_from_beacon(record)
        return ResonantFragment()

    def _fragment_from_beacon(self, record: Mapping[str, Any]) -> ResonantFragment:
        basis = parse_prime_indices(record.get("prime_indices"))
        if basis is None:
            logger.warning("Beacon has no usable prime indices")
            return ResonantFragment()
        fingerprint = to_bytes(record.get("fingerprint"))

        coeffs: dict[int, float] = {}
        for i, p in enumerate(basis):
            if i < len(fingerprint):
                coeffs[p] = fingerprint[i] / 255.0
            else:
                coeffs[p] = self._rng.random() * 0.5

        if basis:
            center = (len(basis) / 2.0, sum(basis) / (len(basis) * 1000.0))
        else:
            center = (0.0, 0.0)
        return ResonantFragment(
            coeffs=coeffs,
            center=center,
            entropy=byte_entropy(fingerprint),
            prime_resonance=prime_resonance(coeffs),
        )

    def decode_with_primes(self, fragment: ResonantFragment) -> str | None:
        if not fragment.coeffs:
            return None
        chars: list[str] = []
        for p in sorted(fragment.coeffs):
            amplitude = fragment.coeffs[p] or 0.0
            for code in (
                js_round(amplitude * 255) % 128,
                (p % 95) + 32,
                js_round((amplitude * 127 + p % 95) / 2) % 95 + 32,
            ):
                if _printable(code):
                    chars.append(chr(code))
                    break
        return "".join(chars) or None

    def decode_with_holographic_field(self, fragment: ResonantFragment) -> str | None:
        if fragment.holographic_field is None or self.provider is None:
            return None
        chars: list[str] = []
        for i, p in enumerate(sorted(fragment.coeffs)):
            amplitude = fragment.coeffs[p] or 0.0
            x = i * 0.1
            try:
                y = self.provider.decode_value(fragment.holographic_field, x, x)
            except (TypeError, ValueError, KeyError) as exc:
                logger.debug("Holographic sample failed", index=i, error=str(exc))
                continue
            code = js_round(abs(y * amplitude) * 255) % 256
            if _printable(code):
                chars.append(chr(code))
        return "".join(chars) or None


def _fragment_from_record(record: Mapping[str, Any]) -> ResonantFragment:
    coeffs: dict[int, float] = {}
    raw_coeffs = record.get("coeffs")
    if isinstance(raw_coeffs, Mapping):
        items = raw_coeffs.items()
    elif isinstance(raw_coeffs, list | tuple):
        # persisted as a list of [prime, amplitude] pairs
        items = [tuple(pair) for pair in raw_coeffs if isinstance(pair, list | tuple) and len(pair) == 2]
    else:
        items = []
    for p, a in items:
        try:
            coeffs[int(p)] = float(a)
        except (TypeError, ValueError):
            continue

    center = record.get("center") or (0.0, 0.0)
    try:
        cx, cy = (float(c) for c in center)
    except (TypeError, ValueError):
        cx, cy = 0.0, 0.0
    try:
        entropy = float(record.get("entropy") or 0.0)
    except (TypeError, ValueError):
        entropy = 0.0
    resonance = record.get("prime_resonance", record.get("primeResonance"))
    return ResonantFragment(
        coeffs=coeffs,
        center=(cx, cy),
        entropy=entropy,
        prime_resonance=float(resonance) if isinstance(resonance, int | float) else None,
        holographic_field=record.get("holographic_field", record.get("holographicField")),
    )

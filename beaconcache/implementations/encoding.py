"""Encoding providers for the holographic codec.

Two providers implement :class:`IEncodingProvider`:

* ``HolographicEncodingProvider`` keeps an amplitude grid per field and
  reproduces the resonance pattern ``(sin(0.1x) + cos(0.1y) + 2) / (1 + e)``.
* ``DeterministicEncodingProvider`` is the reduced-fidelity mode used until
  (or instead of) a full provider: encode values are hash-derived, decode
  always reports 0.5 and primes come from the local sieve.

Selection happens at construction time or through
:func:`resolve_encoding_provider`, which bounds how long a loader may take.
"""

from __future__ import annotations

import asyncio
import hashlib
import math
import struct
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from beaconcache.interfaces.encoding import IEncodingProvider
from beaconcache.primes import generate_primes

logger = structlog.get_logger()

ProviderLoader = Callable[[], Awaitable[IEncodingProvider]]

_GRID_PRECISION = 9


class HolographicField:
    """Amplitude grid owned by a :class:`HolographicEncodingProvider`."""

    def __init__(self) -> None:
        self.grid: dict[tuple[float, float], float] = {}

    @staticmethod
    def key(x: float, y: float) -> tuple[float, float]:
        return (round(x, _GRID_PRECISION), round(y, _GRID_PRECISION))

    def __len__(self) -> int:
        return len(self.grid)


class HolographicEncodingProvider(IEncodingProvider):
    def create_field(self) -> HolographicField:
        return HolographicField()

    def encode_value(self, field: Any, x: float, y: float, entropy: float) -> float:
        pattern = math.sin(x * 0.1) + math.cos(y * 0.1) + 2.0
        amplitude = pattern / (1.0 + entropy)
        if isinstance(field, HolographicField):
            field.grid[HolographicField.key(x, y)] = amplitude
        return amplitude

    def decode_value(self, field: Any, x: float, y: float) -> float:
        if not isinstance(field, HolographicField):
            raise TypeError(f"unsupported field handle {type(field).__name__}")
        return field.grid.get(HolographicField.key(x, y), 0.0)

    def generate_primes(self, count: int) -> list[int]:
        return generate_primes(count)


class DeterministicEncodingProvider(IEncodingProvider):
    """Reduced-fidelity provider; never fails, never reconstructs text."""

    DECODE_VALUE = 0.5

    def create_field(self) -> dict:
        return {}

    def encode_value(self, field: Any, x: float, y: float, entropy: float) -> float:
        digest = hashlib.blake2b(struct.pack("<3d", x, y, entropy), digest_size=8).digest()
        return int.from_bytes(digest, "little") / 2**64

    def decode_value(self, field: Any, x: float, y: float) -> float:
        return self.DECODE_VALUE

    def generate_primes(self, count: int) -> list[int]:
        return generate_primes(count)


async def resolve_encoding_provider(
    loader: ProviderLoader | None, timeout: float = 5.0
) -> IEncodingProvider:
    """Await ``loader`` for at most ``timeout`` seconds.

    Falls back to :class:`DeterministicEncodingProvider` when no loader is
    given, the loader fails, or the deadline passes.
    """
    if loader is None:
        return DeterministicEncodingProvider()
    try:
        provider = await asyncio.wait_for(loader(), timeout)
    except asyncio.TimeoutError:
        logger.warning("Encoding provider load timed out; using deterministic mode", timeout=timeout)
        return DeterministicEncodingProvider()
    except Exception as exc:
        logger.error("Encoding provider failed to load; using deterministic mode", error=str(exc))
        return DeterministicEncodingProvider()
    logger.info("Encoding provider loaded", provider=type(provider).__name__)
    return provider

"""Prime table and small number-theory helpers shared by the index and codec."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence

import numpy as np

MAX_FACTORS = 10


def generate_primes(count: int) -> list[int]:
    """Return the first ``count`` primes using a numpy sieve of Eratosthenes."""
    if count <= 0:
        return []
    # pi(n) > n / ln(n); 15 * count covers every table size in use and the
    # loop widens the sieve for the rare case it does not.
    size = max(16, count * 15)
    while True:
        sieve = np.ones(size, dtype=bool)
        sieve[:2] = False
        for i in range(2, math.isqrt(size - 1) + 1):
            if sieve[i]:
                sieve[i * i :: i] = False
        primes = np.flatnonzero(sieve)
        if len(primes) >= count:
            return [int(p) for p in primes[:count]]
        size *= 2


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def hash_to_number(text: str) -> int:
    """32-bit rolling string hash (``h = h * 31 + unit``) over UTF-16 code units.

    The accumulator wraps as a signed 32-bit integer; the absolute value is
    returned so equal ids hash identically across every client of the index.
    """
    h = 0
    raw = text.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(raw), 2):
        unit = raw[i] | (raw[i + 1] << 8)
        h = _to_int32((h << 5) - h + unit)
    return abs(h)


def prime_factors(n: int, primes: Sequence[int]) -> list[int]:
    """Trial-divide ``n`` over ``primes``.

    At most ``MAX_FACTORS`` factors are collected before the loop stops; a
    leftover cofactor greater than one is appended when there is still room.
    """
    factors: list[int] = []
    num = int(n)
    for p in primes:
        if p * p > num:
            break
        while num % p == 0:
            factors.append(p)
            num //= p
        if len(factors) >= MAX_FACTORS:
            break
    if num > 1 and len(factors) < MAX_FACTORS:
        factors.append(num)
    return factors


def prime_resonance(coeffs: Mapping[int, float]) -> float:
    """Mean of ``amplitude * sin(prime * pi / 100)`` over all coefficients."""
    if not coeffs:
        return 0.0
    total = sum(a * math.sin(p * math.pi / 100.0) for p, a in coeffs.items())
    return total / len(coeffs)


def byte_entropy(data: bytes) -> float:
    """Shannon entropy of the byte histogram, scaled to [0, 1]."""
    if not data:
        return 0.0
    counts = np.bincount(np.frombuffer(data, dtype=np.uint8), minlength=256)
    probs = counts[counts > 0] / len(data)
    return float(-(probs * np.log2(probs)).sum() / 8.0)

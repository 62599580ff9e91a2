"""Reverse index from prime factor to beacon ids."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from .models import Beacon
from .primes import generate_primes, hash_to_number, prime_factors

logger = structlog.get_logger()

PrimeGenerator = Callable[[int], Awaitable[list[int]]]


class PrimeIndexer:
    """Buckets beacon ids by the primes of their basis.

    The basis of a beacon is its explicit ``prime_indices``; when those are
    missing or unparseable the id is hashed and factored against the prime
    table. Relatedness lookups always use the hash-derived basis of the
    query id.
    """

    def __init__(self, table_size: int = 10_000, related_limit: int = 10) -> None:
        self.table_size = table_size
        self.related_limit = related_limit
        self._primes: list[int] = generate_primes(table_size)
        self._buckets: dict[int, list[str]] = {}

    @property
    def primes(self) -> list[int]:
        return self._primes

    def id_basis(self, beacon_id: str) -> list[int]:
        primes = self._primes
        return prime_factors(hash_to_number(beacon_id), primes)

    def basis_for(self, beacon: Beacon) -> list[int]:
        basis = beacon.basis()
        if not basis:
            if beacon.prime_indices:
                logger.warning("Unparseable prime indices", beacon_id=beacon.beacon_id)
            basis = self.id_basis(beacon.beacon_id)
        return basis

    def index(self, beacon: Beacon) -> list[int]:
        basis = self.basis_for(beacon)
        for p in basis:
            self._buckets.setdefault(p, []).append(beacon.beacon_id)
        return basis

    def find_related(self, beacon_id: str, limit: int | None = None) -> list[str]:
        """Ids sharing a bucket with the query id's hash basis, unranked."""
        limit = self.related_limit if limit is None else limit
        seen: dict[str, None] = {}
        for p in self.id_basis(beacon_id):
            for bid in self._buckets.get(p, ()):
                seen.setdefault(bid, None)
        return list(seen)[:limit]

    def remove(self, beacon_id: str) -> None:
        for p in list(self._buckets):
            ids = [bid for bid in self._buckets[p] if bid != beacon_id]
            if ids:
                self._buckets[p] = ids
            else:
                del self._buckets[p]

    def clear(self) -> None:
        self._buckets.clear()

    def size(self) -> int:
        return len(self._buckets)

    def bucket(self, prime: int) -> list[str]:
        return list(self._buckets.get(prime, ()))

    def replace_primes(self, primes: list[int]) -> bool:
        if not primes:
            return False
        self._primes = list(primes)
        return True

    async def upgrade_primes(self, generator: PrimeGenerator, timeout: float = 3.0) -> bool:
        """Swap in an externally generated prime table if it arrives in time.

        A generator that misses the deadline is left running unobserved;
        indexing keeps using the local sieve table.
        """
        task = asyncio.ensure_future(generator(self.table_size))
        task.add_done_callback(_consume_result)
        try:
            primes = await asyncio.wait_for(asyncio.shield(task), timeout)
        except asyncio.TimeoutError:
            logger.info("Prime generator timed out; keeping sieve table", timeout=timeout)
            return False
        except Exception as exc:
            logger.warning("Prime generator failed; keeping sieve table", error=str(exc))
            return False
        upgraded = self.replace_primes(primes)
        if upgraded:
            logger.info("Prime table upgraded", size=len(self._primes))
        return upgraded


def _consume_result(task: asyncio.Future) -> None:
    if not task.cancelled():
        task.exception()

"""Beacon cache controller.

``BeaconCache`` owns the cache map, the author index, the pending-fetch map,
the prime index and the health table. Every mutation goes through this
class; the work itself is delegated to the ``operations`` submodules.
"""

import asyncio
from typing import Any

import structlog
from prometheus_client import CollectorRegistry, Counter

from common.config.settings import CacheSettings, load_settings

from .codec.manager import MemoryCodec
from .health import HealthMonitor
from .indexing import PrimeGenerator, PrimeIndexer
from .interfaces.transport import IBeaconTransport
from .models import Beacon
from .operations import (
    add_beacon_op,
    clear_op,
    close_op,
    fetch_by_author_op,
    find_related_op,
    get_by_author_op,
    get_by_id_op,
    get_by_type_op,
    get_most_recent_op,
    invalidate_author_op,
    invalidate_op,
    self_heal_once_op,
    start_op,
    stats_op,
)
from .persistence import CachePersistence

logger = structlog.get_logger()


class BeaconCache:
    """Content-addressed beacon cache with relatedness index and self-healing.

    Without a ``transport`` the cache is push-only: beacons arrive through
    :meth:`add_beacon` and lookups never leave the process. With one,
    :meth:`get_by_id` fetches misses, coalescing concurrent requests per id.

    The cache is meant to be driven from a single event loop.
    """

    def __init__(
        self,
        persistence: CachePersistence,
        transport: IBeaconTransport | None = None,
        settings: CacheSettings | None = None,
        codec: MemoryCodec | None = None,
        prime_generator: PrimeGenerator | None = None,
        load: bool = True,
    ) -> None:
        self.settings = settings or load_settings()
        self.namespace = self.settings.namespace
        self.persistence = persistence
        self.transport = transport
        self.codec = codec
        self.prime_generator = prime_generator

        self.cache: dict[str, Beacon] = {}
        self.user_index: dict[str, set[str]] = {}
        self.pending: dict[str, asyncio.Future] = {}
        self.tasks: list[asyncio.Task] = []

        self.indexer = PrimeIndexer(
            table_size=self.settings.prime_table_size,
            related_limit=self.settings.related_limit,
        )
        self.health = HealthMonitor()

        # Prometheus metrics
        self.registry = CollectorRegistry()
        self.hit_count = Counter(
            "beacon_cache_hits_total",
            "Lookups served from the cache",
            ["namespace"],
            registry=self.registry,
        )
        self.miss_count = Counter(
            "beacon_cache_misses_total",
            "Lookups not found in the cache",
            ["namespace"],
            registry=self.registry,
        )
        self.fetch_count = Counter(
            "beacon_cache_fetches_total",
            "Transport fetches issued",
            ["namespace"],
            registry=self.registry,
        )
        self.eviction_count = Counter(
            "beacon_cache_evictions_total",
            "Beacons evicted by self-healing",
            ["namespace"],
            registry=self.registry,
        )

        if load:
            self.load()

    @property
    def push_only(self) -> bool:
        return self.transport is None

    # --- Persistence ---
    def load(self) -> int:
        """Restore the persisted cache and rebuild the prime index.

        Beacons without a stored score get the initial health; scores for
        ids that are no longer cached are dropped.
        """
        cache, user_index, health = self.persistence.load()
        self.cache = cache
        self.user_index = user_index
        self.indexer.clear()
        self.health.clear()
        self.health.load({bid: score for bid, score in health.items() if bid in cache})
        for bid, beacon in cache.items():
            self.indexer.index(beacon)
            if bid not in self.health:
                self.health.initialize(bid, self.settings.initial_health)
        return len(cache)

    def save(self) -> bool:
        return self.persistence.save(self.cache, self.user_index, self.health.export())

    def notify_backgrounded(self) -> bool:
        """Host hook for the app moving to the background; saves immediately."""
        return self.save()

    # --- Lookups ---
    async def get_by_id(self, beacon_id: str) -> Beacon | None:
        return await get_by_id_op(self, beacon_id)

    def get_by_author(self, author_id: str, beacon_type: str | None = None) -> list[Beacon]:
        return get_by_author_op(self, author_id, beacon_type)

    def get_by_type(self, beacon_type: str) -> list[Beacon]:
        return get_by_type_op(self, beacon_type)

    def get_most_recent(self, author_id: str, beacon_type: str | None = None) -> Beacon | None:
        return get_most_recent_op(self, author_id, beacon_type)

    async def fetch_by_author(self, author_id: str, beacon_type: str | None = None) -> list[Beacon]:
        return await fetch_by_author_op(self, author_id, beacon_type)

    def find_related(self, beacon_id: str) -> list[str]:
        return find_related_op(self, beacon_id)

    # --- Mutations ---
    def add_beacon(self, raw: Any) -> Beacon | None:
        return add_beacon_op(self, raw)

    def invalidate(self, beacon_id: str) -> None:
        invalidate_op(self, beacon_id)

    def invalidate_author(self, author_id: str) -> int:
        return invalidate_author_op(self, author_id)

    def clear(self) -> None:
        clear_op(self)

    # --- Maintenance ---
    def self_heal(self) -> list[str]:
        return self_heal_once_op(self)

    def stats(self) -> dict[str, Any]:
        return stats_op(self)

    def start(self) -> None:
        start_op(self)

    async def close(self) -> None:
        await close_op(self)

    async def __aenter__(self) -> "BeaconCache":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # --- Decoding ---
    def decode(self, target: str | Beacon | Any) -> str | None:
        """Recover text for a cached id, a beacon or a raw record."""
        if self.codec is None:
            raise RuntimeError("No codec configured for this cache")
        if isinstance(target, str):
            beacon = self.cache.get(target)
            if beacon is None:
                return None
            target = beacon
        return self.codec.decode(target)

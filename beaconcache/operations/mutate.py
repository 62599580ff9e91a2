# beaconcache/operations/mutate.py
"""Insert, invalidate and clear operations."""

from typing import TYPE_CHECKING, Any

import structlog

from ..models import Beacon

if TYPE_CHECKING:
    from ..core import BeaconCache

logger = structlog.get_logger()


def insert_op(cache: "BeaconCache", beacon: Beacon, persist: bool = True) -> bool:
    """Register a normalized beacon in every structure. Returns True if new."""
    bid = beacon.beacon_id
    is_new = bid not in cache.cache
    if not is_new:
        # a replaced beacon may carry a different basis
        cache.indexer.remove(bid)

    cache.cache[bid] = beacon
    if beacon.author_id:
        cache.user_index.setdefault(beacon.author_id, set()).add(bid)
    cache.indexer.index(beacon)
    cache.health.initialize(bid, cache.settings.initial_health)

    if persist:
        cache.save()
    return is_new


def add_beacon_op(cache: "BeaconCache", raw: Any) -> Beacon | None:
    beacon = cache.persistence.normalize(raw)
    if beacon is None:
        logger.warning("Dropping beacon that could not be normalized")
        return None
    insert_op(cache, beacon)
    return beacon


def invalidate_op(cache: "BeaconCache", beacon_id: str) -> None:
    """Drop a beacon from the cache, prime index and health table.

    Author index entries are left in place; lookups by author skip ids that
    are no longer cached.
    """
    cache.cache.pop(beacon_id, None)
    cache.health.remove(beacon_id)
    cache.indexer.remove(beacon_id)


def invalidate_author_op(cache: "BeaconCache", author_id: str) -> int:
    """Drop every cached beacon registered under ``author_id`` and the author entry.

    Dropped beacons also leave the health table and the prime index, so a
    later self-healing pass never counts them against its eviction budget.
    """
    ids = cache.user_index.pop(author_id, None)
    if not ids:
        return 0
    removed = 0
    for bid in ids:
        if bid in cache.cache:
            invalidate_op(cache, bid)
            removed += 1
    logger.info("Invalidated author beacons", author_id=author_id, removed=removed)
    return removed


def clear_op(cache: "BeaconCache") -> None:
    cache.cache.clear()
    cache.user_index.clear()
    cache.indexer.clear()
    cache.health.clear()
    cache.persistence.clear()
    logger.info("Cache and storage cleared", namespace=cache.namespace)

# beaconcache/operations/lookup.py
"""Cache lookups and transport-backed fetches."""

import asyncio
from typing import TYPE_CHECKING

import structlog

from ..exceptions import TransportError
from ..models import Beacon
from .mutate import insert_op

if TYPE_CHECKING:
    from ..core import BeaconCache

logger = structlog.get_logger()


async def get_by_id_op(cache: "BeaconCache", beacon_id: str) -> Beacon | None:
    """Cached beacon, or a single-flight fetch when a transport is configured."""
    beacon = cache.cache.get(beacon_id)
    if beacon is not None:
        cache.health.touch(beacon_id, cache.settings.hit_delta)
        cache.hit_count.labels(namespace=cache.namespace).inc()
        return beacon

    cache.miss_count.labels(namespace=cache.namespace).inc()
    if cache.transport is None:
        return None

    related = [bid for bid in cache.indexer.find_related(beacon_id) if bid in cache.cache]
    if related:
        logger.debug("Related beacons cached", beacon_id=beacon_id, related=related)

    task = cache.pending.get(beacon_id)
    if task is None:
        task = asyncio.ensure_future(_fetch_one(cache, beacon_id))
        cache.pending[beacon_id] = task
        task.add_done_callback(lambda done: _release(cache, beacon_id, done))
    else:
        logger.debug("Joining pending fetch", beacon_id=beacon_id)
    # shield: one caller giving up must not cancel the fetch for the others
    return await asyncio.shield(task)


def _release(cache: "BeaconCache", beacon_id: str, task: asyncio.Future) -> None:
    if cache.pending.get(beacon_id) is task:
        del cache.pending[beacon_id]
    if not task.cancelled():
        task.exception()


async def _fetch_one(cache: "BeaconCache", beacon_id: str) -> Beacon | None:
    cache.fetch_count.labels(namespace=cache.namespace).inc()
    try:
        raw = await cache.transport.fetch_beacon(beacon_id)
    except TransportError:
        raise
    except Exception as exc:
        raise TransportError(f"fetch of beacon {beacon_id} failed: {exc}") from exc

    beacon = cache.persistence.normalize(raw)
    if beacon is not None:
        insert_op(cache, beacon)
    return beacon


def get_by_author_op(
    cache: "BeaconCache", author_id: str, beacon_type: str | None = None
) -> list[Beacon]:
    ids = cache.user_index.get(author_id)
    if not ids:
        return []
    return [
        b
        for bid, b in cache.cache.items()
        if bid in ids and (beacon_type is None or b.beacon_type == beacon_type)
    ]


def get_by_type_op(cache: "BeaconCache", beacon_type: str) -> list[Beacon]:
    return [b for b in cache.cache.values() if b.beacon_type == beacon_type]


def get_most_recent_op(
    cache: "BeaconCache", author_id: str, beacon_type: str | None = None
) -> Beacon | None:
    beacons = get_by_author_op(cache, author_id, beacon_type)
    if not beacons:
        return None
    return sorted(beacons, key=lambda b: b.created_at, reverse=True)[0]


async def fetch_by_author_op(
    cache: "BeaconCache", author_id: str, beacon_type: str | None = None
) -> list[Beacon]:
    """Fetch an author's beacons (``"*"`` for every author) and cache them."""
    if cache.transport is None:
        if author_id == "*":
            return get_by_type_op(cache, beacon_type) if beacon_type else list(cache.cache.values())
        return get_by_author_op(cache, author_id, beacon_type)

    cache.fetch_count.labels(namespace=cache.namespace).inc()
    try:
        raws = await cache.transport.fetch_beacons(author_id, beacon_type)
    except TransportError:
        raise
    except Exception as exc:
        raise TransportError(f"fetch of beacons for {author_id} failed: {exc}") from exc

    beacons: list[Beacon] = []
    has_new = False
    for raw in raws or []:
        beacon = cache.persistence.normalize(raw)
        if beacon is None:
            continue
        if not beacon.author_id and author_id != "*":
            beacon.author_id = author_id
        has_new = insert_op(cache, beacon, persist=False) or has_new
        beacons.append(beacon)

    if has_new:
        cache.save()
    return beacons


def find_related_op(cache: "BeaconCache", beacon_id: str) -> list[str]:
    return cache.indexer.find_related(beacon_id)

# beaconcache/operations/lifecycle.py
"""Self-healing pass and background task management."""

import asyncio
import contextlib
import math
from typing import TYPE_CHECKING

import structlog

from .mutate import invalidate_op

if TYPE_CHECKING:
    from ..core import BeaconCache

logger = structlog.get_logger()


def self_heal_once_op(cache: "BeaconCache") -> list[str]:
    """Evict low-health beacons when cache entropy is high, then decay all scores.

    At most ``floor(len(cache) * max_evict_fraction)`` beacons are removed,
    lowest score first. Errors are logged, never raised.
    """
    settings = cache.settings
    evicted: list[str] = []
    try:
        size = len(cache.cache)
        entropy = cache.health.entropy(size)
        if entropy > settings.entropy_threshold:
            candidates = sorted(
                (
                    bid
                    for bid in cache.health.low_health(settings.low_health_threshold)
                    if bid in cache.cache
                ),
                key=cache.health.get,
            )
            max_remove = math.floor(size * settings.max_evict_fraction)
            for bid in candidates[:max_remove]:
                invalidate_op(cache, bid)
                evicted.append(bid)
            if evicted:
                cache.eviction_count.labels(namespace=cache.namespace).inc(len(evicted))
            logger.info(
                "Self-healing pass", entropy=round(entropy, 4), evicted=len(evicted), size=size
            )
        cache.health.decay_all(settings.decay_rate)
    except Exception as exc:
        logger.error("Error in cache self-healing", error=str(exc))
    return evicted


async def self_heal_loop_op(cache: "BeaconCache") -> None:
    # each pass runs to completion before the next sleep starts
    while True:
        await asyncio.sleep(cache.settings.self_heal_interval_seconds)
        self_heal_once_op(cache)


async def _upgrade_primes(cache: "BeaconCache") -> None:
    await cache.indexer.upgrade_primes(
        cache.prime_generator, cache.settings.prime_upgrade_timeout_seconds
    )


def start_op(cache: "BeaconCache") -> None:
    """Launch the background tasks on the running event loop."""
    if cache.tasks:
        return
    loop = asyncio.get_running_loop()
    cache.tasks.append(loop.create_task(self_heal_loop_op(cache)))
    cache.tasks.append(
        cache.persistence.autosave(cache.save, cache.settings.autosave_interval_seconds)
    )
    if cache.prime_generator is not None:
        cache.tasks.append(loop.create_task(_upgrade_primes(cache)))
    logger.info("Beacon cache started", namespace=cache.namespace)


async def close_op(cache: "BeaconCache") -> None:
    tasks, cache.tasks = cache.tasks, []
    for task in tasks:
        task.cancel()
    for task in tasks:
        with contextlib.suppress(asyncio.CancelledError):
            await task
    cache.persistence.stop_autosave()
    cache.save()
    logger.info("Beacon cache closed", namespace=cache.namespace)

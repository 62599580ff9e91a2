# beaconcache/operations/stats.py
"""Statistics for the beacon cache."""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..core import BeaconCache


def stats_op(cache: "BeaconCache") -> dict[str, Any]:
    """Snapshot of cache size, index size and health figures.

    ``hit_rate`` is reported as the average health score.
    """
    avg_health = cache.health.average()
    return {
        "total_beacons": len(cache.cache),
        "prime_index_size": cache.indexer.size(),
        "avg_health": avg_health,
        "entropy": cache.health.entropy(len(cache.cache)),
        "hit_rate": avg_health,
    }

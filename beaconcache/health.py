"""Per-beacon health scores, cache entropy and decay."""

from __future__ import annotations

import math
from collections.abc import Mapping

import structlog

logger = structlog.get_logger()

DEFAULT_HEALTH = 0.5
HEALTH_STEP = 0.1


class HealthMonitor:
    """Tracks a health score in [0, 1] for every cached beacon."""

    def __init__(self) -> None:
        self._scores: dict[str, float] = {}

    def initialize(self, beacon_id: str, score: float = 1.0) -> None:
        self._scores[beacon_id] = score

    def remove(self, beacon_id: str) -> None:
        self._scores.pop(beacon_id, None)

    def clear(self) -> None:
        self._scores.clear()

    def get(self, beacon_id: str) -> float:
        return self._scores.get(beacon_id, DEFAULT_HEALTH)

    def __contains__(self, beacon_id: object) -> bool:
        return beacon_id in self._scores

    def __len__(self) -> int:
        return len(self._scores)

    def touch(self, beacon_id: str, delta: float) -> float:
        """Move a score by ``delta * 0.1``, clamped to [0, 1]."""
        current = self._scores.get(beacon_id, DEFAULT_HEALTH)
        score = max(0.0, min(1.0, current + delta * HEALTH_STEP))
        self._scores[beacon_id] = score
        return score

    def entropy(self, cache_size: int) -> float:
        """Normalized Shannon entropy of the tracked scores.

        ``cache_size`` only gates the empty case; normalization uses the
        number of tracked scores. Fewer than two scores yield 0.
        """
        if cache_size == 0:
            return 0.0
        scores = list(self._scores.values())
        if len(scores) < 2:
            return 0.0
        total = -sum(h * math.log(h) for h in scores if h > 0)
        return total / math.log(len(scores))

    def low_health(self, threshold: float = 0.3) -> list[str]:
        return [bid for bid, score in self._scores.items() if score < threshold]

    def decay_all(self, rate: float = 0.99) -> None:
        for bid in self._scores:
            self._scores[bid] *= rate

    def average(self) -> float:
        if not self._scores:
            return 0.0
        return sum(self._scores.values()) / len(self._scores)

    def export(self) -> dict[str, float]:
        return dict(self._scores)

    def load(self, data: Mapping[str, float]) -> None:
        """Merge a persisted ``id -> score`` map, skipping non-numeric values."""
        for bid, score in data.items():
            try:
                self._scores[str(bid)] = max(0.0, min(1.0, float(score)))
            except (TypeError, ValueError):
                logger.warning("Ignoring malformed health score", beacon_id=bid)

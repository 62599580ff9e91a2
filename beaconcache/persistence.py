"""Durable blob persistence for the beacon cache.

The whole cache lives under a single key as one JSON document::

    {"cache": {id: beacon}, "userIndex": {author: [ids]},
     "healthMap": {id: score}, "timestamp": <ms>}

Byte fields are stored as base64. Fields outside the canonical beacon schema
that the decoders rely on are copied forward explicitly.
"""

from __future__ import annotations

import asyncio
import atexit
import inspect
import json
import time
import weakref
from collections.abc import Callable, Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from .interfaces.storage import IKeyValueStore
from .models import Beacon
from .serialization import bytes_to_base64, deserialize, serialize

logger = structlog.get_logger()

# Non-canonical fields the decode chain needs after a reload.
CRITICAL_FIELDS = ("originalText", "content", "data", "coeffs", "center", "entropy")

CacheSnapshot = tuple[dict[str, Beacon], dict[str, set[str]], dict[str, float]]


def _storable(value: Any) -> bool:
    try:
        serialize(value)
    except (TypeError, ValueError):
        return False
    return True


class CachePersistence:
    def __init__(self, kv_store: IKeyValueStore, key: str = "beacon-cache"):
        self.kv_store = kv_store
        self.key = key
        self._exit_hooks: list[Callable[[], Any]] = []

    def normalize(self, raw: Any) -> Beacon | None:
        """Canonical :class:`Beacon` for ``raw``, or ``None`` if unusable."""
        if raw is None:
            return None
        if isinstance(raw, Beacon):
            return raw
        if not isinstance(raw, Mapping):
            logger.warning("Cannot normalize beacon", kind=type(raw).__name__)
            return None
        try:
            return Beacon.model_validate(dict(raw))
        except ValidationError as exc:
            logger.error(
                "Failed to normalize beacon",
                beacon_id=raw.get("beacon_id"),
                error=str(exc),
            )
            return None

    def load(self) -> CacheSnapshot:
        cache: dict[str, Beacon] = {}
        user_index: dict[str, set[str]] = {}
        health: dict[str, float] = {}
        try:
            raw = self.kv_store.get(self.key)
        except Exception as exc:
            # the stored blob is left in place
            logger.error("Failed to read cache blob; starting empty", key=self.key, error=str(exc))
            return cache, user_index, health
        if raw is None:
            return cache, user_index, health

        try:
            data = deserialize(raw)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")

            for beacon_id, entry in (data.get("cache") or {}).items():
                if isinstance(entry, dict):
                    entry = {"beacon_id": beacon_id, **entry}
                beacon = self.normalize(entry)
                if beacon is not None:
                    cache[beacon_id] = beacon

            for author_id, ids in (data.get("userIndex") or {}).items():
                user_index[author_id] = set(ids)

            for beacon_id, score in (data.get("healthMap") or {}).items():
                health[beacon_id] = float(score)
        except Exception as exc:
            logger.error("Failed to load cache blob; discarding it", key=self.key, error=str(exc))
            self._discard()
            return {}, {}, {}

        logger.info("Loaded beacons from storage", count=len(cache))
        return cache, user_index, health

    def _discard(self) -> None:
        try:
            self.kv_store.delete(self.key)
        except Exception as exc:
            logger.error("Failed to delete corrupt cache blob", key=self.key, error=str(exc))

    def to_document(self, beacon: Beacon) -> dict[str, Any]:
        """Storage form of one beacon."""
        doc: dict[str, Any] = {
            "beacon_id": beacon.beacon_id,
            "beacon_type": beacon.beacon_type,
            "author_id": beacon.author_id,
            "prime_indices": beacon.prime_indices,
            "epoch": beacon.epoch,
            "fingerprint": bytes_to_base64(beacon.fingerprint),
            "signature": bytes_to_base64(beacon.signature),
            "metadata": beacon.metadata,
            "created_at": beacon.created_at,
        }

        if beacon.metadata:
            try:
                parsed = json.loads(beacon.metadata)
            except ValueError:
                parsed = None
            if isinstance(parsed, dict) and isinstance(parsed.get("originalText"), str):
                doc["originalText"] = parsed["originalText"]

        extras = beacon.extras
        for name in CRITICAL_FIELDS:
            value = extras.get(name)
            if value is not None and _storable(value):
                doc[name] = value
            elif value is not None:
                logger.warning("Dropping unstorable critical field", beacon_id=beacon.beacon_id, field=name)

        for name, value in extras.items():
            if name in doc or name in CRITICAL_FIELDS:
                continue
            if _storable(value):
                doc[name] = value
        return doc

    def save(
        self,
        cache: Mapping[str, Beacon],
        user_index: Mapping[str, set[str]],
        health: Mapping[str, float],
    ) -> bool:
        try:
            document = {
                "cache": {bid: self.to_document(b) for bid, b in cache.items()},
                "userIndex": {author: sorted(ids) for author, ids in user_index.items()},
                "healthMap": dict(health),
                "timestamp": int(time.time() * 1000),
            }
            self.kv_store.set(self.key, serialize(document))
        except Exception as exc:
            logger.error("Failed to save cache", key=self.key, error=str(exc))
            return False
        logger.debug("Saved beacons to storage", count=len(cache))
        return True

    def clear(self) -> None:
        try:
            self.kv_store.delete(self.key)
        except Exception as exc:
            logger.error("Failed to clear cache storage", key=self.key, error=str(exc))
        else:
            logger.info("Cache storage cleared", key=self.key)

    def autosave(self, save_fn: Callable[[], Any], interval: float = 30.0) -> asyncio.Task:
        """Run ``save_fn`` every ``interval`` seconds and once at interpreter exit.

        Must be called from a running event loop; the returned task is owned
        by the caller. A bound ``save_fn`` is held weakly by the exit hook, so
        an owner that is never closed can still be collected once its task
        is gone.
        """
        hook = _exit_hook(save_fn)
        atexit.register(hook)
        self._exit_hooks.append(hook)
        return asyncio.get_running_loop().create_task(self._autosave_loop(save_fn, interval))

    async def _autosave_loop(self, save_fn: Callable[[], Any], interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                save_fn()
            except Exception as exc:
                logger.error("Autosave failed", error=str(exc))

    def stop_autosave(self) -> None:
        for hook in self._exit_hooks:
            atexit.unregister(hook)
        self._exit_hooks.clear()


def _exit_hook(save_fn: Callable[[], Any]) -> Callable[[], Any]:
    if not inspect.ismethod(save_fn):
        return save_fn
    ref = weakref.WeakMethod(save_fn)

    def hook() -> None:
        fn = ref()
        if fn is not None:
            fn()

    return hook

"""Composition root helpers for the beacon cache."""

from collections.abc import Mapping
from enum import Enum
from typing import Any

from common.config.settings import load_settings
from common.utils.logger import get_logger

from .codec.manager import MemoryCodec
from .core import BeaconCache
from .implementations.encoding import DeterministicEncodingProvider, HolographicEncodingProvider
from .implementations.redis_kv import RedisKeyValueStore
from .implementations.storage import InMemoryKeyValueStore
from .indexing import PrimeGenerator
from .interfaces.encoding import IEncodingProvider
from .interfaces.storage import IKeyValueStore
from .interfaces.transport import IBeaconTransport
from .persistence import CachePersistence

logger = get_logger("beaconcache.factory")


class CacheMode(Enum):
    """PUSH_ONLY caches what is pushed in; FETCH also asks a transport on misses."""

    PUSH_ONLY = "push_only"
    FETCH = "fetch"


_PROVIDERS: dict[str, type[IEncodingProvider]] = {
    "deterministic": DeterministicEncodingProvider,
    "holographic": HolographicEncodingProvider,
}


def create_kv_store(config: Mapping[str, Any] | None = None) -> IKeyValueStore:
    """Redis when the config has a ``redis`` section, otherwise in-process."""
    redis_cfg = (config or {}).get("redis")
    if redis_cfg is None:
        return InMemoryKeyValueStore()
    return RedisKeyValueStore(
        host=redis_cfg.get("host", "localhost"),
        port=int(redis_cfg.get("port", 6379)),
        db=int(redis_cfg.get("db", 0)),
    )


def create_memory_codec(config: Mapping[str, Any] | None = None) -> MemoryCodec:
    """Codec with the provider named by ``config["provider"]`` (deterministic by default)."""
    name = str((config or {}).get("provider", "deterministic")).lower()
    try:
        provider_cls = _PROVIDERS[name]
    except KeyError:
        raise ValueError(
            f"Unsupported encoding provider: {name}. Choose one of {sorted(_PROVIDERS)}."
        ) from None
    return MemoryCodec(provider_cls())


def create_beacon_cache(
    mode: CacheMode = CacheMode.PUSH_ONLY,
    config: Mapping[str, Any] | None = None,
    transport: IBeaconTransport | None = None,
    kv_store: IKeyValueStore | None = None,
    codec: MemoryCodec | None = None,
    prime_generator: PrimeGenerator | None = None,
) -> BeaconCache:
    """
    Build a BeaconCache wired to its storage, transport and codec.

    Parameters
    ----------
    mode : CacheMode
        PUSH_ONLY or FETCH. FETCH requires ``transport``.
    config : Mapping, optional
        ``cache`` holds settings overrides, ``config_file`` a JSON/YAML
        settings file, ``redis`` a ``{"host", "port", "db"}`` section, and
        ``codec`` the options for :func:`create_memory_codec`.
    transport : IBeaconTransport, optional
        Request/response channel used on cache misses.
    kv_store : IKeyValueStore, optional
        Durable store; derived from ``config`` when omitted.
    codec : MemoryCodec, optional
        Codec used by :meth:`BeaconCache.decode`.
    prime_generator : callable, optional
        Async prime source tried once at start-up with a bounded timeout.
    """
    config = config or {}
    if mode is CacheMode.FETCH and transport is None:
        raise ValueError("FETCH mode requires a transport")
    if mode is CacheMode.PUSH_ONLY and transport is not None:
        raise ValueError("PUSH_ONLY mode does not take a transport")

    settings = load_settings(
        config_file=config.get("config_file"), overrides=dict(config.get("cache") or {})
    )
    settings.validate_config()

    store = kv_store if kv_store is not None else create_kv_store(config)
    persistence = CachePersistence(store, key=f"{settings.namespace}:{settings.persistence_key}")
    if codec is None and "codec" in config:
        codec = create_memory_codec(config["codec"])

    logger.info("Creating beacon cache", mode=mode.value, namespace=settings.namespace)
    return BeaconCache(
        persistence,
        transport=transport,
        settings=settings,
        codec=codec,
        prime_generator=prime_generator,
    )

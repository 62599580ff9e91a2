"""
Backend implementations for the beacon cache.

- Key-value stores: in-process dict, Redis
- Encoding providers: grid-backed holographic provider, deterministic fallback
"""

from beaconcache.implementations.encoding import (
    DeterministicEncodingProvider,
    HolographicEncodingProvider,
    resolve_encoding_provider,
)
from beaconcache.implementations.redis_kv import RedisKeyValueStore
from beaconcache.implementations.storage import InMemoryKeyValueStore

__all__ = [
    "DeterministicEncodingProvider",
    "HolographicEncodingProvider",
    "InMemoryKeyValueStore",
    "RedisKeyValueStore",
    "resolve_encoding_provider",
]

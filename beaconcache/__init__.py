"""
beaconcache - client-resident cache and codec for encoded content beacons.

The package keeps a content-addressed map of beacons together with:

- a reverse index from prime factor to beacon ids (relatedness lookup)
- a per-beacon health table driving a periodic self-healing eviction pass
- a durable blob persistence layer that keeps non-canonical fields alive
- a text codec that recovers readable text through ordered fallbacks

Modules:
    core            BeaconCache controller
    operations      lookup, mutation, lifecycle and stats operations
    codec           fallback decoder, fragment decoder, encoder, manager
    persistence     durable blob load/save
    factory         composition root helpers
"""

__version__ = "0.1.0"

from .core import BeaconCache
from .exceptions import BeaconCacheError, EncodingError, PersistenceError, TransportError
from .factory import CacheMode, create_beacon_cache, create_memory_codec
from .models import Beacon, EncodedMemory, PrimeResonanceIdentity, ResonantFragment

__all__ = [
    "Beacon",
    "BeaconCache",
    "BeaconCacheError",
    "CacheMode",
    "EncodedMemory",
    "EncodingError",
    "PersistenceError",
    "PrimeResonanceIdentity",
    "ResonantFragment",
    "TransportError",
    "create_beacon_cache",
    "create_memory_codec",
]

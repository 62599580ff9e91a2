"""Shared fixtures for the beacon cache tests."""

import pytest
from beacon_support import FakeTransport, make_beacon

from beaconcache.core import BeaconCache
from beaconcache.implementations.storage import InMemoryKeyValueStore
from beaconcache.persistence import CachePersistence
from common.config.settings import CacheSettings


@pytest.fixture
def settings() -> CacheSettings:
    return CacheSettings(self_heal_interval_seconds=3600, autosave_interval_seconds=3600)


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def persistence(kv_store) -> CachePersistence:
    return CachePersistence(kv_store, key="test:beacon-cache")


@pytest.fixture
def cache(persistence, settings) -> BeaconCache:
    return BeaconCache(persistence, settings=settings)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport(
        {
            "remote-1": make_beacon("remote-1", author_id="bob"),
            "remote-2": make_beacon("remote-2", author_id="bob", beacon_type="comment"),
        }
    )


@pytest.fixture
def fetch_cache(persistence, settings, transport) -> BeaconCache:
    return BeaconCache(persistence, transport=transport, settings=settings)

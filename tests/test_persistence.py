import asyncio
import contextlib
import gc
import json
import weakref

from beaconcache.exceptions import PersistenceError
from beaconcache.implementations.storage import InMemoryKeyValueStore
from beaconcache.models import Beacon
from beaconcache.persistence import CRITICAL_FIELDS, CachePersistence
from beaconcache.serialization import deserialize, serialize


def test_round_trip_preserves_bytes(persistence):
    beacon = Beacon(beacon_id="a", fingerprint=[1, 2, 3], signature=b"\x02\x00\x00\x00hi")
    assert persistence.save({"a": beacon}, {"alice": {"a"}}, {"a": 0.75})

    cache, user_index, health = persistence.load()
    assert list(cache["a"].fingerprint) == [1, 2, 3]
    assert cache["a"].signature == b"\x02\x00\x00\x00hi"
    assert user_index == {"alice": {"a"}}
    assert health == {"a": 0.75}


def test_round_trip_preserves_non_canonical_fields(persistence):
    beacon = Beacon(
        beacon_id="a",
        originalText="hello",
        content="content text",
        data="data text",
        coeffs={2: 0.5, 3: 0.25},
        center=(1.5, 0.01),
        entropy=0.4,
        username="alice",
    )
    persistence.save({"a": beacon}, {}, {})
    loaded = persistence.load()[0]["a"]

    assert loaded.extras["originalText"] == "hello"
    assert loaded.extras["content"] == "content text"
    assert loaded.extras["data"] == "data text"
    assert loaded.extras["coeffs"] == {"2": 0.5, "3": 0.25}
    assert loaded.extras["center"] == [1.5, 0.01]
    assert loaded.extras["entropy"] == 0.4
    assert loaded.extras["username"] == "alice"


def test_original_text_is_lifted_from_metadata(persistence):
    beacon = Beacon(beacon_id="a", metadata={"originalText": "from metadata"})
    doc = persistence.to_document(beacon)
    assert doc["originalText"] == "from metadata"
    assert json.loads(doc["metadata"]) == {"originalText": "from metadata"}


def test_explicit_original_text_wins_over_metadata(persistence):
    beacon = Beacon(beacon_id="a", metadata='{"originalText": "old"}', originalText="new")
    assert persistence.to_document(beacon)["originalText"] == "new"


def test_non_json_metadata_is_kept_verbatim(persistence):
    doc = persistence.to_document(Beacon(beacon_id="a", metadata="plain words"))
    assert doc["metadata"] == "plain words"
    assert "originalText" not in doc


def test_opaque_extras_are_dropped(persistence):
    doc = persistence.to_document(Beacon(beacon_id="a", holographicField=object(), note="kept"))
    assert "holographicField" not in doc
    assert doc["note"] == "kept"


def test_critical_field_list():
    assert set(CRITICAL_FIELDS) == {"originalText", "content", "data", "coeffs", "center", "entropy"}


def test_document_layout(persistence, kv_store):
    persistence.save({"a": Beacon(beacon_id="a", signature=b"hi")}, {"alice": {"a"}}, {"a": 1.0})
    doc = deserialize(kv_store.get("test:beacon-cache"))
    assert set(doc) == {"cache", "userIndex", "healthMap", "timestamp"}
    assert doc["cache"]["a"]["signature"] == "aGk="
    assert doc["userIndex"] == {"alice": ["a"]}
    assert isinstance(doc["timestamp"], int)


def test_load_without_blob_is_empty(persistence):
    assert persistence.load() == ({}, {}, {})


def test_corrupt_blob_is_discarded(persistence, kv_store):
    kv_store.set("test:beacon-cache", b"{definitely not json")
    assert persistence.load() == ({}, {}, {})
    assert "test:beacon-cache" not in kv_store


def test_wrong_shape_blob_is_discarded_without_partial_recovery(persistence, kv_store):
    kv_store.set(
        "test:beacon-cache",
        serialize({"cache": {"a": {"beacon_id": "a"}}, "userIndex": {}, "healthMap": {"a": "bad"}}),
    )
    assert persistence.load() == ({}, {}, {})
    assert "test:beacon-cache" not in kv_store

    kv_store.set("test:beacon-cache", serialize([1, 2, 3]))
    assert persistence.load() == ({}, {}, {})


def test_unnormalizable_entries_are_skipped(persistence, kv_store):
    kv_store.set(
        "test:beacon-cache",
        serialize({"cache": {"a": {"beacon_id": "a"}, "b": "garbage"}, "userIndex": {}, "healthMap": {}}),
    )
    cache, _, _ = persistence.load()
    assert list(cache) == ["a"]


def test_normalize_shapes(persistence):
    assert persistence.normalize(None) is None
    assert persistence.normalize("not a beacon") is None
    assert persistence.normalize({"fingerprint": [1]}) is None
    assert persistence.normalize({"beacon_id": "x", "prime_indices": [2, None]}) is None
    assert persistence.normalize({"beacon_id": "x", "prime_indices": ["two"]}) is None
    assert persistence.normalize({"beacon_id": "x", "metadata": {"when": object()}}) is None

    beacon = persistence.normalize(
        {"beacon_id": "x", "fingerprint": {"type": "Buffer", "data": [9, 8]}, "signature": "aGk="}
    )
    assert beacon.fingerprint == b"\x09\x08"
    assert beacon.signature == b"hi"
    assert persistence.normalize(beacon) is beacon


def test_clear_removes_blob(persistence, kv_store):
    persistence.save({}, {}, {})
    assert "test:beacon-cache" in kv_store
    persistence.clear()
    assert "test:beacon-cache" not in kv_store


class ExplodingStore:
    def get(self, key):
        raise RuntimeError("disk on fire")

    def set(self, key, value):
        raise RuntimeError("disk on fire")

    def delete(self, key):
        raise RuntimeError("disk on fire")

    def health_check(self):
        return False


def test_storage_failures_are_swallowed():
    persistence = CachePersistence(ExplodingStore())
    assert persistence.load() == ({}, {}, {})
    assert persistence.save({}, {}, {}) is False
    persistence.clear()


class UnreachableStore(InMemoryKeyValueStore):
    """Fails the next ``outages`` reads, then behaves."""

    def __init__(self, outages: int = 1):
        super().__init__()
        self.outages = outages

    def get(self, key):
        if self.outages:
            self.outages -= 1
            raise PersistenceError("redis get failed: connection refused")
        return super().get(key)


def test_read_failure_keeps_the_stored_blob():
    store = UnreachableStore()
    persistence = CachePersistence(store, key="k")
    persistence.save({"a": Beacon(beacon_id="a")}, {}, {"a": 1.0})

    assert persistence.load() == ({}, {}, {})
    assert "k" in store
    cache, _, health = persistence.load()
    assert list(cache) == ["a"]
    assert health == {"a": 1.0}


class Owner:
    def __init__(self):
        self.saves = 0

    def save(self):
        self.saves += 1


def test_autosave_exit_hook_does_not_keep_owner_alive(persistence):
    owner = Owner()
    alive = weakref.ref(owner)

    async def run():
        task = persistence.autosave(owner.save, interval=3600)
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    asyncio.run(run())
    hook = persistence._exit_hooks[0]
    hook()
    assert owner.saves == 1

    del owner
    gc.collect()
    assert alive() is None
    hook()
    persistence.stop_autosave()

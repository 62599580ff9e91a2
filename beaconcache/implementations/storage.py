"""In-process key-value store."""

from beaconcache.interfaces.storage import IKeyValueStore


class InMemoryKeyValueStore(IKeyValueStore):
    """A dict-backed key-value store for tests and single-process hosts."""

    def __init__(self):
        self._data: dict[str, bytes] = {}

    def set(self, key: str, value: bytes):
        self._data[key] = value

    def get(self, key: str) -> bytes | None:
        return self._data.get(key)

    def delete(self, key: str):
        self._data.pop(key, None)

    def health_check(self) -> bool:
        return True

    def __contains__(self, key: object) -> bool:
        return key in self._data

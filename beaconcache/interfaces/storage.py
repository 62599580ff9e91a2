from abc import ABC, abstractmethod


class IKeyValueStore(ABC):
    @abstractmethod
    def set(self, key: str, value: bytes):
        pass

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        pass

    @abstractmethod
    def delete(self, key: str):
        pass

    @abstractmethod
    def health_check(self) -> bool:
        pass

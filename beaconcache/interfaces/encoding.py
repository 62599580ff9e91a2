from abc import ABC, abstractmethod
from typing import Any


class IEncodingProvider(ABC):
    """Numeric primitives behind the holographic encoder and decoder.

    ``create_field`` returns an opaque handle; only the provider that created
    a field may read or write it.
    """

    @abstractmethod
    def create_field(self) -> Any:
        pass

    @abstractmethod
    def encode_value(self, field: Any, x: float, y: float, entropy: float) -> float:
        pass

    @abstractmethod
    def decode_value(self, field: Any, x: float, y: float) -> float:
        pass

    @abstractmethod
    def generate_primes(self, count: int) -> list[int]:
        pass

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any


class IBeaconTransport(ABC):
    """Request/response channel to the beacon server.

    Implementations return raw beacon JSON objects; normalization happens in
    the cache. Failures are raised, not returned.
    """

    @abstractmethod
    async def fetch_beacon(self, beacon_id: str) -> Mapping[str, Any] | None:
        pass

    @abstractmethod
    async def fetch_beacons(
        self, author_id: str, beacon_type: str | None = None
    ) -> list[Mapping[str, Any]]:
        pass

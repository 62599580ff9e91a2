"""Exception hierarchy for the beacon cache."""


class BeaconCacheError(Exception):
    """Base class for errors raised by the beacon cache."""


class TransportError(BeaconCacheError):
    """Raised when the transport fails to deliver a requested beacon."""


class EncodingError(BeaconCacheError):
    """Raised when text cannot be encoded, e.g. no identity is configured."""


class PersistenceError(BeaconCacheError):
    """Raised by key-value stores when the storage medium fails."""

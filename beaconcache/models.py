"""Data model for beacons and their decoded fragment view."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from .serialization import to_bytes

# Canonical field names; everything else rides along as model extras.
CANONICAL_FIELDS = (
    "beacon_id",
    "beacon_type",
    "author_id",
    "prime_indices",
    "epoch",
    "fingerprint",
    "signature",
    "metadata",
    "created_at",
)


class Beacon(BaseModel):
    """A cached, content-addressed record.

    Unknown keys are kept as extras because the decode chain relies on
    fields such as ``originalText``, ``content`` or ``coeffs`` that are not
    part of the canonical schema.
    """

    model_config = ConfigDict(extra="allow", arbitrary_types_allowed=True)

    beacon_id: str
    beacon_type: str = ""
    author_id: str = ""
    prime_indices: str | None = None
    epoch: int = 0
    fingerprint: bytes = b""
    signature: bytes = b""
    metadata: str | None = None
    created_at: str = ""

    @field_validator("fingerprint", "signature", mode="before")
    @classmethod
    def _normalize_bytes(cls, value: Any) -> bytes:
        return to_bytes(value)

    @field_validator("prime_indices", mode="before")
    @classmethod
    def _serialize_indices(cls, value: Any) -> Any:
        if isinstance(value, list | tuple):
            try:
                return json.dumps([int(p) for p in value])
            except (TypeError, ValueError) as exc:
                # pydantic only reports ValueError as a validation failure
                raise ValueError(f"prime_indices must be integers: {exc}") from exc
        return value

    @field_validator("metadata", mode="before")
    @classmethod
    def _serialize_metadata(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            try:
                return json.dumps(dict(value))
            except (TypeError, ValueError) as exc:
                raise ValueError(f"metadata is not JSON serializable: {exc}") from exc
        return value

    @field_validator("epoch", mode="before")
    @classmethod
    def _coerce_epoch(cls, value: Any) -> Any:
        if value is None:
            return 0
        if isinstance(value, float):
            return int(value)
        return value

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created_at(cls, value: Any) -> Any:
        if value is None:
            return ""
        if hasattr(value, "isoformat"):
            return value.isoformat()
        if isinstance(value, int | float):
            return str(value)
        return value

    @property
    def extras(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    def as_record(self) -> dict[str, Any]:
        """Flat dict of canonical fields and extras."""
        record = {name: getattr(self, name) for name in CANONICAL_FIELDS}
        record.update(self.extras)
        return record

    def basis(self) -> list[int] | None:
        """Parsed ``prime_indices``; ``None`` when absent or malformed."""
        return parse_prime_indices(self.prime_indices)


def parse_prime_indices(value: Any) -> list[int] | None:
    """Decode a JSON list of ints (or an already-decoded list)."""
    if not value:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return None
    if not isinstance(value, list | tuple):
        return None
    try:
        return [int(p) for p in value]
    except (TypeError, ValueError):
        return None


@dataclass
class ResonantFragment:
    """Coefficient-map view of a beacon used by the numeric decoders."""

    coeffs: dict[int, float] = field(default_factory=dict)
    center: tuple[float, float] = (0.0, 0.0)
    entropy: float = 0.0
    prime_resonance: float | None = None
    holographic_field: Any | None = None

    @property
    def is_empty(self) -> bool:
        return not self.coeffs


@dataclass
class PrimeResonanceIdentity:
    """Public resonance of the local node, embedded in every signature."""

    public_resonance: dict[str, Any]
    node_address: str = ""

    def to_json(self) -> str:
        return json.dumps(self.public_resonance, separators=(",", ":"))


@dataclass
class EncodedMemory:
    fragment: ResonantFragment
    index: list[int]
    epoch: int
    fingerprint: bytes
    signature: bytes
    original_text: str

    def as_record(self) -> dict[str, Any]:
        """Flat beacon-and-fragment record, the shape the decoders read."""
        return {
            "coeffs": dict(self.fragment.coeffs),
            "center": self.fragment.center,
            "entropy": self.fragment.entropy,
            "prime_resonance": self.fragment.prime_resonance,
            "holographic_field": self.fragment.holographic_field,
            "index": list(self.index),
            "prime_indices": json.dumps(list(self.index), separators=(",", ":")),
            "epoch": self.epoch,
            "fingerprint": self.fingerprint,
            "signature": self.signature,
            "originalText": self.original_text,
        }

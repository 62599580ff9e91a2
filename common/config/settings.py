"""Centralised settings definitions for the beacon cache.

The goal of this module is to provide a single Pydantic-based source of truth
for configuration. Settings classes inherit from ``BeaconBaseSettings`` so they
automatically pick up the ``BEACON_`` environment prefix.
"""

from __future__ import annotations

import json
from json import JSONDecodeError
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BeaconBaseSettings(BaseSettings):
    """Base settings class shared by the beacon cache components.

    * ``env_prefix`` ensures environment variables follow ``BEACON_`` naming.
    * ``env_nested_delimiter`` allows structured values such as
      ``BEACON_REDIS__HOST``.
    """

    model_config = SettingsConfigDict(env_prefix="BEACON_", env_nested_delimiter="__")
    model_config.setdefault("protected_namespaces", ("settings_",))


class CacheSettings(BeaconBaseSettings):
    """Settings for the beacon cache, its self-healing pass and persistence."""

    namespace: str = Field(default="default")
    persistence_key: str = Field(
        default="beacon-cache",
        description="Key of the single blob holding the persisted cache",
    )

    # ---------------------------------------------------------------------
    # Timers
    # ---------------------------------------------------------------------
    self_heal_interval_seconds: float = Field(
        default=60.0, description="Delay between two self-healing passes."
    )
    autosave_interval_seconds: float = Field(
        default=30.0, description="Delay between two periodic saves."
    )

    # ---------------------------------------------------------------------
    # Health and eviction
    # ---------------------------------------------------------------------
    entropy_threshold: float = Field(
        default=0.8, description="Cache entropy above which the self-healing pass evicts."
    )
    low_health_threshold: float = Field(
        default=0.3, description="Health below which a beacon is an eviction candidate."
    )
    max_evict_fraction: float = Field(
        default=0.1, description="Upper bound on the share of the cache evicted per pass."
    )
    decay_rate: float = Field(default=0.99, description="Multiplier applied to every score.")
    hit_delta: float = Field(default=1.0, description="Health delta applied on a cache hit.")
    initial_health: float = Field(default=1.0, description="Health of a freshly inserted beacon.")

    # ---------------------------------------------------------------------
    # Prime index
    # ---------------------------------------------------------------------
    related_limit: int = Field(default=10, description="Maximum ids returned by find_related.")
    prime_table_size: int = Field(default=10_000, description="Primes kept in the local table.")
    prime_upgrade_timeout_seconds: float = Field(
        default=3.0, description="Bound on waiting for an external prime generator."
    )
    encoding_provider_timeout_seconds: float = Field(
        default=5.0, description="Bound on waiting for the full encoding provider."
    )

    # ---------------------------------------------------------------------
    # Storage
    # ---------------------------------------------------------------------
    redis_host: str = Field(default="localhost")
    redis_port: int = Field(default=6379)
    redis_db: int = Field(default=0)

    log_level: str = Field(default="INFO")

    def validate_config(self) -> None:
        """Raise ``ValueError`` listing every inconsistent value."""
        problems: list[str] = []
        for name in ("entropy_threshold", "low_health_threshold", "max_evict_fraction", "decay_rate"):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                problems.append(f"{name} must be in (0, 1], got {value}")
        for name in ("self_heal_interval_seconds", "autosave_interval_seconds"):
            if getattr(self, name) <= 0:
                problems.append(f"{name} must be positive")
        if self.related_limit <= 0:
            problems.append("related_limit must be positive")
        if self.prime_table_size <= 0:
            problems.append("prime_table_size must be positive")
        if not self.persistence_key:
            problems.append("persistence_key must not be empty")
        if problems:
            raise ValueError("Invalid cache settings: " + "; ".join(problems))


def _load_file_data(config_file: Path | None) -> dict[str, Any]:
    """Load settings data from JSON or YAML, returning an empty dict when absent."""

    if not config_file:
        return {}
    if not config_file.exists():
        return {}

    suffix = config_file.suffix.lower()
    raw: dict[str, Any] = {}
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(config_file.read_text())
        if isinstance(data, dict):
            raw = data
    elif suffix == ".json":
        try:
            raw = json.loads(config_file.read_text())
        except JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in config file {config_file}: {exc}") from exc
    else:
        raise ValueError(
            f"Unsupported config file extension '{suffix}' for {config_file}. Use .json or .yaml/.yml."
        )
    return raw


def load_settings(
    *,
    config_file: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> CacheSettings:
    """Construct :class:`CacheSettings` from the provided sources.

    Precedence (highest first):
    1. ``overrides`` dict passed explicitly.
    2. Environment variables (handled by ``CacheSettings``).
    3. Data from ``config_file`` (JSON or YAML).

    Parameters
    ----------
    config_file:
        Optional path to a JSON or YAML file containing settings payload.
    overrides:
        Optional dict used to override or supplement the file/env-derived data.
    """

    path = Path(config_file).expanduser() if config_file else None
    file_data = _load_file_data(path)
    # Init kwargs outrank the environment in pydantic-settings, so file values
    # are only passed for keys the environment does not already provide.
    env_backed = CacheSettings().model_dump(exclude_unset=True)
    payload = {k: v for k, v in file_data.items() if k not in env_backed}
    payload.update(overrides or {})
    return CacheSettings(**payload)


__all__ = [
    "BeaconBaseSettings",
    "CacheSettings",
    "load_settings",
]

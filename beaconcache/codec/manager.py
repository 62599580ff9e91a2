"""Codec manager coordinating encoding and the ordered decode policy."""

from __future__ import annotations

from typing import Any

import structlog

from ..implementations.encoding import (
    DeterministicEncodingProvider,
    ProviderLoader,
    resolve_encoding_provider,
)
from ..interfaces.encoding import IEncodingProvider
from ..models import EncodedMemory, PrimeResonanceIdentity
from .decoder import MemoryDecoder
from .encoder import MemoryEncoder
from .fallback import FallbackDecoder

logger = structlog.get_logger()


class MemoryCodec:
    """Owns one provider plus the encoder and decoders built on it.

    Construct one per session and pass it to whoever needs to encode or
    decode; there is no shared module-level instance.
    """

    def __init__(self, provider: IEncodingProvider | None = None):
        self.fallback = FallbackDecoder()
        self.identity: PrimeResonanceIdentity | None = None
        self._install(provider or DeterministicEncodingProvider())

    def _install(self, provider: IEncodingProvider) -> None:
        self.provider = provider
        self.encoder = MemoryEncoder(provider)
        self.decoder = MemoryDecoder(provider)

    @property
    def reduced_fidelity(self) -> bool:
        return isinstance(self.provider, DeterministicEncodingProvider)

    def set_identity(self, identity: PrimeResonanceIdentity) -> None:
        self.identity = identity
        logger.info("Codec identity set", node_address=identity.node_address)

    def encode(self, text: str) -> EncodedMemory:
        return self.encoder.encode(text, self.identity)

    def decode(self, data: Any) -> str | None:
        """Recover text from a beacon, a raw record or a fragment.

        Returns ``None`` when every strategy is exhausted.
        """
        try:
            text = self.fallback.decode(data)
            if text:
                return text

            fragment = self.decoder.to_resonant_fragment(data)
            text = self.decoder.decode_with_holographic_field(fragment)
            if text:
                logger.debug("Decoded via holographic field")
                return text

            text = self.decoder.decode_with_primes(fragment)
            if text:
                logger.debug("Decoded via prime reconstruction")
                return text
        except Exception as exc:
            logger.error("Error during fragment decoding", error=str(exc))
            try:
                text = self.fallback.decode(data)
            except Exception as retry_exc:
                logger.error("Fallback retry failed", error=str(retry_exc))
                text = None
            if text:
                return text

        logger.warning("Unable to decode fragment: no suitable decoder found")
        return None

    async def upgrade_provider(self, loader: ProviderLoader, timeout: float = 5.0) -> bool:
        """Replace the provider with the loaded one if it arrives in time."""
        provider = await resolve_encoding_provider(loader, timeout)
        if isinstance(provider, DeterministicEncodingProvider):
            return False
        self._install(provider)
        return True

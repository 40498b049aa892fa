"""Text embedding with caching."""

import hashlib
from dataclasses import dataclass
from typing import Protocol

from meal_planner.services.cache import Cache


class EmbeddingClient(Protocol):
    """Interface for an embedding provider."""

    async def embed(self, text: str) -> list[float]:
        """Return the embedding vector for the text."""


@dataclass
class EmbeddingService:
    """Embeds text, reusing cached vectors for repeated phrases."""

    client: EmbeddingClient
    cache: Cache
    ttl_seconds: int = 86400

    async def embed(self, text: str) -> list[float]:
        """Return the embedding for text, calling the provider on a miss."""
        cache_key = f"embed:{hashlib.sha256(text.encode('utf-8')).hexdigest()}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return cached

        vector = await self.client.embed(text)
        self.cache.set(cache_key, vector, ttl_seconds=self.ttl_seconds)
        return vector

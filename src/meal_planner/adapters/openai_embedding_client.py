"""OpenAI embeddings client."""

from dataclasses import dataclass

import httpx
from openai import AsyncOpenAI

from meal_planner.services.embeddings import EmbeddingClient


@dataclass
class OpenAIEmbeddingClient(EmbeddingClient):
    """Embedding client backed by the OpenAI embeddings API."""

    client: AsyncOpenAI
    model: str
    dimensions: int

    @classmethod
    def create(
        cls,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimensions: int = 1536,
        http_client: httpx.AsyncClient | None = None,
    ) -> "OpenAIEmbeddingClient":
        """Create an embedding client with a managed httpx session."""
        return cls(
            client=AsyncOpenAI(
                api_key=api_key,
                http_client=http_client or httpx.AsyncClient(timeout=15),
            ),
            model=model,
            dimensions=dimensions,
        )

    async def embed(self, text: str) -> list[float]:
        """Embed text, padded or truncated to the configured dimensions."""
        response = await self.client.embeddings.create(
            model=self.model,
            input=text,
            encoding_format="float",
        )
        if not response.data:
            raise RuntimeError("OpenAI returned no embedding")
        return fit_dimensions(list(response.data[0].embedding), self.dimensions)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()


def fit_dimensions(vector: list[float], dimensions: int) -> list[float]:
    """Pad with zeros or truncate so the vector matches the index size."""
    if len(vector) >= dimensions:
        return vector[:dimensions]
    return vector + [0.0] * (dimensions - len(vector))

"""OpenAI embeddings client."""

from dataclasses import dataclass

from openai import AsyncOpenAI

from meal_analyzer.services.matching import EmbeddingClient


@dataclass
class OpenAIEmbeddingClient(EmbeddingClient):
    """Embedding client backed by the OpenAI embeddings endpoint."""

    client: AsyncOpenAI
    model: str = "text-embedding-3-small"

    @classmethod
    def create(
        cls, api_key: str, model: str, timeout_seconds: float = 10.0
    ) -> "OpenAIEmbeddingClient":
        """Create an OpenAI embedding client."""
        return cls(
            client=AsyncOpenAI(api_key=api_key, timeout=timeout_seconds), model=model
        )

    async def embed(self, text: str) -> list[float]:
        """Return the embedding vector for ``text``."""
        response = await self.client.embeddings.create(model=self.model, input=text)
        return list(response.data[0].embedding)

    async def close(self) -> None:
        """Close the underlying OpenAI HTTP session."""
        await self.client.close()

"""Embedding helpers using OpenAI text-embedding-3-small."""

from __future__ import annotations

from openai import AsyncOpenAI, OpenAIError

from src.config import settings
from src.errors import EmbeddingUnavailable

# ~8k token input limit at 4 chars per token
MAX_EMBEDDING_CHARS = 30_000


def _get_client() -> AsyncOpenAI:
    if not settings.openai_api_key:
        raise EmbeddingUnavailable("OPENAI_API_KEY not configured")
    return AsyncOpenAI(api_key=settings.openai_api_key)


async def embed_texts(texts: list[str], model: str | None = None) -> list[list[float]]:
    """Embed a list of texts using the OpenAI embeddings API.

    Args:
        texts: Strings to embed. Each is truncated to ``MAX_EMBEDDING_CHARS``.
        model: OpenAI embedding model name (defaults to ``settings.embedding_model``).

    Returns:
        A list of embedding vectors (one per input text, same order).

    Raises:
        EmbeddingUnavailable: If the key is missing or the API call fails.
    """
    if not texts:
        return []

    client = _get_client()
    try:
        response = await client.embeddings.create(
            input=[t[:MAX_EMBEDDING_CHARS] for t in texts],
            model=model or settings.embedding_model,
            dimensions=settings.embedding_dimensions,
        )
    except OpenAIError as exc:
        raise EmbeddingUnavailable(f"OpenAI embedding API error: {exc}") from exc

    data = sorted(response.data, key=lambda item: item.index)
    if len(data) != len(texts):
        raise EmbeddingUnavailable(
            f"Expected {len(texts)} embeddings, got {len(data)}"
        )
    return [item.embedding for item in data]


async def embed_text(text: str) -> list[float]:
    """Embed a single string."""
    vectors = await embed_texts([text])
    return vectors[0]

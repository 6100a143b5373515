"""
Embedding provider boundary.

The pipeline sees a single contract, embed(text) -> vector, plus the
vector width the provider promises. Errors and timeouts surface as
exceptions that the Embedding Worker records on the chunk.

Dependencies: langchain_google_genai (via FixedDimensionEmbeddings)
System role: Opaque embedding call used by the Embedding Worker
"""

import asyncio
import logging
from typing import Protocol

from knowledge_sync.configs.embedding import EmbeddingSettings

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    """Anything that turns one text into one vector of a known width."""

    dimension: int

    async def embed(self, text: str) -> list[float]:
        ...


class GeminiEmbeddingProvider:
    """EmbeddingProvider backed by Google Gemini embeddings."""

    def __init__(self, settings: EmbeddingSettings, embeddings=None) -> None:
        """
        Args:
            settings: Model, width and credentials
            embeddings: Pre-built LangChain embeddings (lazily created when None)
        """
        self._settings = settings
        self._embeddings = embeddings
        self.dimension = settings.dimension

    def _client(self):
        if self._embeddings is None:
            from knowledge_sync.boundary.embeddings.fixed_dimension import (
                FixedDimensionEmbeddings,
            )

            kwargs = {}
            if self._settings.google_api_key:
                kwargs["google_api_key"] = self._settings.google_api_key
            self._embeddings = FixedDimensionEmbeddings(
                model=self._settings.model,
                output_dimensionality=self._settings.dimension,
                **kwargs,
            )
        return self._embeddings

    async def embed(self, text: str) -> list[float]:
        """
        Embed one chunk of text.

        The LangChain client is synchronous, so the call runs in a worker
        thread; the caller applies the timeout.
        """
        client = self._client()
        vectors = await asyncio.to_thread(
            client.embed_documents,
            [text],
            task_type=self._settings.task_type,
        )
        return list(vectors[0])

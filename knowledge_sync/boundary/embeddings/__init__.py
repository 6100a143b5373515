"""
Embedding boundary modules.

Exports: EmbeddingProvider, GeminiEmbeddingProvider
"""

from .provider import EmbeddingProvider, GeminiEmbeddingProvider

__all__ = ["EmbeddingProvider", "GeminiEmbeddingProvider"]

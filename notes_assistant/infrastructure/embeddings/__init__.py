"""Local embedding backends."""

from .sentence_transformer_provider import SentenceTransformerEmbeddingProvider

__all__ = ["SentenceTransformerEmbeddingProvider"]

"""Public web-knowledge adapters."""

from .wikipedia_client import WikipediaKnowledgeProvider

__all__ = ["WikipediaKnowledgeProvider"]

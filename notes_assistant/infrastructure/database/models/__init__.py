from .chunk_models import KnowledgeChunkModel

__all__ = [
    "KnowledgeChunkModel",
]

from .base import Base
from .models import KnowledgeChunkModel

__all__ = [
    "Base",
    "KnowledgeChunkModel",
]

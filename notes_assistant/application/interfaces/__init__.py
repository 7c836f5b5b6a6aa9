from .chat_provider import ChatProvider
from .embedding_provider import EmbeddingProvider, ProgressCallback
from .knowledge_provider import KnowledgeProvider
from .local_llm import LocalLLM, ProgressTextCallback
from .source_feed import SourceFeed
from .vector_store import VectorStore

__all__ = [
    "ChatProvider",
    "EmbeddingProvider",
    "ProgressCallback",
    "KnowledgeProvider",
    "LocalLLM",
    "ProgressTextCallback",
    "SourceFeed",
    "VectorStore",
]

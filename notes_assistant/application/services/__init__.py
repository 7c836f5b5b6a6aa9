from .answer_strategies import (
    AnswerRequest,
    AnswerStrategy,
    HostedModelStrategy,
    LocalModelStrategy,
    StrategyReply,
    WebKnowledgeStrategy,
)
from .assistant_service import AskParams, KnowledgeAssistantService
from .chunking_service import Chunker
from .indexing_service import IndexingOrchestrator, IndexingRegistry
from .retrieval_service import RetrievalOptions, RetrievalService
from .similarity_search import SimilaritySearch, cosine_similarity
from .sse_manager import SSEManager

__all__ = [
    "AnswerRequest",
    "AnswerStrategy",
    "HostedModelStrategy",
    "LocalModelStrategy",
    "StrategyReply",
    "WebKnowledgeStrategy",
    "AskParams",
    "KnowledgeAssistantService",
    "Chunker",
    "IndexingOrchestrator",
    "IndexingRegistry",
    "RetrievalOptions",
    "RetrievalService",
    "SimilaritySearch",
    "cosine_similarity",
    "SSEManager",
]

from .answer import AnswerSource, AnswerStage, RAGAnswer, RetrievalResult, WebSummary
from .chat_message import ChatMessage, TokenUsage, ChatCompletionResult
from .chunk import Chunk, ScoredChunk, make_chunk_id
from .indexing import IndexingProgress, IndexingStatus
from .source import PageText, Source, SourceType

__all__ = [
    "AnswerSource",
    "AnswerStage",
    "RAGAnswer",
    "RetrievalResult",
    "WebSummary",
    "ChatMessage",
    "TokenUsage",
    "ChatCompletionResult",
    "Chunk",
    "ScoredChunk",
    "make_chunk_id",
    "IndexingProgress",
    "IndexingStatus",
    "PageText",
    "Source",
    "SourceType",
]

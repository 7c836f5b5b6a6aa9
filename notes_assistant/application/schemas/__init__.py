from .ask import AskRequest, AskResponse, AnswerSourceSchema
from .indexing import (
    IndexingProgressSchema,
    IndexingStatusResponse,
    IndexOneResponse,
    PageTextSchema,
    SourceResponse,
    SourceUpsertRequest,
)

__all__ = [
    "AskRequest",
    "AskResponse",
    "AnswerSourceSchema",
    "IndexingProgressSchema",
    "IndexingStatusResponse",
    "IndexOneResponse",
    "PageTextSchema",
    "SourceResponse",
    "SourceUpsertRequest",
]

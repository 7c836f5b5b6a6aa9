"""Domain entity for knowledge chunks: source excerpts with vector embeddings."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from notes_assistant.domain.entities.source import SourceType


def make_chunk_id(source_id: str, chunk_index: int) -> str:
    """Chunk ids are positional, so a rechunked source reuses low indexes."""
    return f"{source_id}::{chunk_index}"


@dataclass
class Chunk:
    """A bounded excerpt of one source, the unit of embedding and retrieval.

    ``content`` starts with a one-line header naming the source (and the page
    for documents) followed by a blank line; ``body`` strips it again.
    """

    chunk_id: str
    owner_id: str
    source_id: str
    source_type: SourceType
    source_title: str
    chunk_index: int
    content: str
    page_number: int | None = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    vector: list[float] = field(default_factory=list)

    @property
    def body(self) -> str:
        if self.content.startswith("# "):
            _, sep, rest = self.content.partition("\n\n")
            if sep:
                return rest
        return self.content


@dataclass
class ScoredChunk:
    """A chunk paired with its similarity to a query vector."""

    chunk: Chunk
    score: float

    @property
    def source_id(self) -> str:
        return self.chunk.source_id

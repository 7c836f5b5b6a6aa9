"""Domain entities for retrieval results and generated answers."""

from dataclasses import dataclass, field
from enum import Enum

from notes_assistant.domain.entities.chunk import ScoredChunk
from notes_assistant.domain.entities.source import SourceType


class AnswerStage(str, Enum):
    """Which stage of the fallback chain produced an answer."""

    LOCAL = "local"
    HOSTED = "hosted"
    WEB = "web"
    NONE = "none"


@dataclass
class RetrievalResult:
    """Outcome of the relevance gate and context builder for one question."""

    has_match: bool
    candidates: list[ScoredChunk] = field(default_factory=list)
    selected_chunks: list[ScoredChunk] = field(default_factory=list)
    context_text: str = ""
    keywords: list[str] = field(default_factory=list)
    top_score: float = 0.0


@dataclass
class AnswerSource:
    """A citation pointing at the chunk an answer was grounded on."""

    source_id: str
    source_type: SourceType
    source_title: str
    chunk_id: str
    snippet: str
    score: float
    page_number: int | None = None


@dataclass
class RAGAnswer:
    """Final response of ``ask_from_notes``.

    ``used`` names the stage that produced the text so clients can label the
    reply. ``reference_url`` is set when the web-knowledge stage answered.
    """

    answer: str
    sources: list[AnswerSource] = field(default_factory=list)
    used: AnswerStage = AnswerStage.NONE
    reference_url: str | None = None


@dataclass
class WebSummary:
    """Public encyclopedia summary for an entity."""

    title: str
    extract: str
    url: str | None = None

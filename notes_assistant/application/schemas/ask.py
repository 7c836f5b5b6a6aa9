"""Pydantic schemas for the ask API."""

from pydantic import BaseModel, Field

from notes_assistant.domain.entities import AnswerStage, SourceType


# ── Request Schemas ──────────────────────────────────────────────────


class AskRequest(BaseModel):
    """Request body for a question against an owner's notes.

    Tuning fields are optional; omitted values use the configured defaults.
    """

    owner_id: str = Field(..., min_length=1)
    question: str = Field(..., min_length=1, description="Natural-language question")
    top_k: int | None = Field(default=None, ge=1, le=200)
    max_context_chars: int | None = Field(default=None, ge=0)
    prefer_local_llm: bool = False
    min_score: float | None = Field(default=None, ge=-1.0, le=1.0)
    min_top_score: float | None = Field(default=None, ge=-1.0, le=1.0)
    max_notes: int | None = Field(default=None, ge=1)
    max_chunks_per_note: int | None = Field(default=None, ge=1)
    device_profile: str | None = Field(default=None, pattern="^(desktop|mobile)$")


# ── Response Schemas ─────────────────────────────────────────────────


class AnswerSourceSchema(BaseModel):
    """A citation for the chunk an answer drew on."""

    source_id: str
    source_type: SourceType
    source_title: str
    chunk_id: str
    snippet: str
    score: float
    page_number: int | None = None


class AskResponse(BaseModel):
    answer: str
    sources: list[AnswerSourceSchema] = []
    used: AnswerStage
    reference_url: str | None = None

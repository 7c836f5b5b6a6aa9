"""Pydantic schemas for source feed and indexing API requests and responses."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from notes_assistant.domain.entities import IndexingStatus, SourceType


# ── Request Schemas ──────────────────────────────────────────────────


class PageTextSchema(BaseModel):
    page_number: int = Field(..., ge=1)
    text: str = ""


class SourceUpsertRequest(BaseModel):
    """A note or document record pushed by the note-taking application.

    Notes send ``title`` and ``content``; documents send ``file_name`` and
    ``pages`` as extracted upstream.
    """

    source_id: str = Field(..., min_length=1)
    source_type: SourceType = SourceType.NOTE
    title: str | None = None
    file_name: str | None = None
    content: str = ""
    pages: list[PageTextSchema] = []
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def _check_kind(self) -> "SourceUpsertRequest":
        if self.source_type == SourceType.DOCUMENT and not (self.file_name or self.title):
            raise ValueError("documents require a file_name")
        return self


# ── Response Schemas ─────────────────────────────────────────────────


class SourceResponse(BaseModel):
    owner_id: str
    source_id: str
    source_type: SourceType
    title: str
    updated_at: datetime
    incremental_scheduled: bool = False


class IndexingProgressSchema(BaseModel):
    stage: str
    download_ratio: float | None = None
    indexed_count: int | None = None
    total_count: int | None = None
    message: str | None = None
    failed_sources: list[str] = []


class IndexingStatusResponse(BaseModel):
    owner_id: str
    status: IndexingStatus
    progress: IndexingProgressSchema
    error: str | None = None


class IndexOneResponse(BaseModel):
    owner_id: str
    source_id: str
    chunk_count: int

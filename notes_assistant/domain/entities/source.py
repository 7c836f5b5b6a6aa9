"""Domain entities for indexable sources: notes and uploaded documents."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class SourceType(str, Enum):
    """Kinds of content the knowledge base can index."""

    NOTE = "note"
    DOCUMENT = "document"


@dataclass
class PageText:
    """Text extracted from one page of a document."""

    page_number: int
    text: str


@dataclass
class Source:
    """A note or document supplied by the note-taking application.

    Notes carry their text in ``content``. Documents carry the file name in
    ``title`` and the extracted text in ``pages``, one entry per page, so
    chunks can cite the page they came from.
    """

    owner_id: str
    source_id: str
    source_type: SourceType
    title: str
    content: str = ""
    pages: list[PageText] = field(default_factory=list)
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def note(
        cls,
        owner_id: str,
        source_id: str,
        title: str,
        content: str,
        updated_at: datetime | None = None,
    ) -> "Source":
        return cls(
            owner_id=owner_id,
            source_id=source_id,
            source_type=SourceType.NOTE,
            title=title,
            content=content,
            updated_at=updated_at or datetime.now(timezone.utc),
        )

    @classmethod
    def document(
        cls,
        owner_id: str,
        source_id: str,
        file_name: str,
        pages: list[PageText],
        updated_at: datetime | None = None,
    ) -> "Source":
        return cls(
            owner_id=owner_id,
            source_id=source_id,
            source_type=SourceType.DOCUMENT,
            title=file_name,
            pages=list(pages),
            updated_at=updated_at or datetime.now(timezone.utc),
        )

    @property
    def is_document(self) -> bool:
        return self.source_type == SourceType.DOCUMENT

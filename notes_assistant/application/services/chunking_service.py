"""Chunking service — splits notes and documents into overlapping excerpts.

Paragraphs are merged greedily up to a target size. When a chunk is flushed,
the tail of its text seeds the next one so sentences near a boundary stay
retrievable from either side. Document pages are chunked independently so
every chunk keeps the page number it came from.
"""

import logging
import re

from notes_assistant.domain.entities import Chunk, Source, SourceType, make_chunk_id

logger = logging.getLogger(__name__)

# ── Chunking constants ──────────────────────────────────────────────
_DEFAULT_TARGET_CHARS = 1200  # ~300 tokens (rough 4:1 char-to-token ratio)
_DEFAULT_OVERLAP_CHARS = 200  # Overlap for context continuity
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n+")


class Chunker:
    """Splits a source's text into size-bounded, overlapping chunks.

    ``target_chars`` bounds the stored chunk, header included. A single
    paragraph longer than that is emitted whole rather than cut mid-paragraph.
    """

    def __init__(
        self,
        *,
        target_chars: int = _DEFAULT_TARGET_CHARS,
        overlap_chars: int = _DEFAULT_OVERLAP_CHARS,
    ):
        if target_chars <= 0:
            raise ValueError("target_chars must be positive")
        if overlap_chars < 0:
            raise ValueError("overlap_chars must not be negative")
        self.target_chars = target_chars
        self.overlap_chars = overlap_chars

    def chunk(self, source: Source) -> list[Chunk]:
        """Chunk a note or document. Empty sources yield no chunks."""
        if source.source_type == SourceType.DOCUMENT:
            return self.chunk_document(source)
        return self.chunk_note(source)

    def chunk_note(self, source: Source) -> list[Chunk]:
        header = f"# {source.title}"
        chunks: list[Chunk] = []
        for body in self._split_text(source.content, self._body_budget(header)):
            chunks.append(self._make_chunk(source, len(chunks), header, body))
        return chunks

    def chunk_document(self, source: Source) -> list[Chunk]:
        chunks: list[Chunk] = []
        for page in source.pages:
            header = f"# {source.title} (Page {page.page_number})"
            for body in self._split_text(page.text, self._body_budget(header)):
                chunks.append(
                    self._make_chunk(
                        source, len(chunks), header, body, page.page_number
                    )
                )
        logger.debug(
            "Chunked document %s: %d pages -> %d chunks",
            source.source_id,
            len(source.pages),
            len(chunks),
        )
        return chunks

    # ── Private helpers ──────────────────────────────────────────────

    @staticmethod
    def _normalize(text: str) -> str:
        return (text or "").replace("\r\n", "\n").replace("\r", "\n").strip()

    @classmethod
    def split_paragraphs(cls, text: str) -> list[str]:
        """Split normalized text on blank lines, dropping empty paragraphs."""
        raw = cls._normalize(text)
        if not raw:
            return []
        return [p.strip() for p in _PARAGRAPH_BREAK.split(raw) if p.strip()]

    def _body_budget(self, header: str) -> int:
        # The stored chunk is header + blank line + body
        return self.target_chars - len(header) - 2

    def _split_text(self, text: str, budget: int) -> list[str]:
        """Greedily merge paragraphs into chunk bodies with a trailing overlap."""
        bodies: list[str] = []
        buffer = ""

        for paragraph in self.split_paragraphs(text):
            if not buffer:
                buffer = paragraph
                continue

            candidate = f"{buffer}\n\n{paragraph}"
            if len(candidate) <= budget:
                buffer = candidate
                continue

            bodies.append(buffer.strip())
            overlap = buffer[-self.overlap_chars :].strip() if self.overlap_chars else ""
            buffer = f"{overlap}\n\n{paragraph}" if overlap else paragraph

        if buffer.strip():
            bodies.append(buffer.strip())
        return bodies

    @staticmethod
    def _make_chunk(
        source: Source,
        index: int,
        header: str,
        body: str,
        page_number: int | None = None,
    ) -> Chunk:
        return Chunk(
            chunk_id=make_chunk_id(source.source_id, index),
            owner_id=source.owner_id,
            source_id=source.source_id,
            source_type=source.source_type,
            source_title=source.title,
            chunk_index=index,
            content=f"{header}\n\n{body}",
            page_number=page_number,
            updated_at=source.updated_at,
        )

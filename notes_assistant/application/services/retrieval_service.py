"""Retrieval service — relevance gate, diversity selection and context assembly.

Flow for one question:
  1. Embed the question and fetch the ``top_k`` most similar chunks.
  2. Gate: if the best score is below ``min_top_score`` the index has nothing
     relevant, so nothing is selected.
  3. Select a diverse subset (capped per source and in distinct sources).
  4. Build a bounded context grouped by source for the answer models.

Keyword extraction and snippets are presentation helpers: they never affect
which chunks are retrieved.
"""

import logging
import re
from dataclasses import dataclass, replace

from notes_assistant.application.interfaces.embedding_provider import EmbeddingProvider
from notes_assistant.application.services.similarity_search import SimilaritySearch
from notes_assistant.domain.entities import (
    Chunk,
    RetrievalResult,
    ScoredChunk,
    SourceType,
)

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"
ELLIPSIS = "…"

_STOP_WORDS = frozenset(
    {
        "about", "above", "after", "again", "all", "also", "and", "any", "are",
        "because", "been", "before", "being", "between", "both", "but", "can",
        "could", "did", "does", "doing", "done", "each", "few", "for", "from",
        "had", "has", "have", "having", "her", "here", "hers", "him", "his",
        "how", "into", "its", "just", "know", "like", "more", "most", "much",
        "must", "my", "not", "now", "off", "once", "only", "other", "our",
        "ours", "out", "over", "own", "same", "she", "should", "some", "such",
        "tell", "than", "that", "the", "their", "theirs", "them", "then",
        "there", "these", "they", "this", "those", "through", "too", "under",
        "until", "very", "was", "were", "what", "when", "where", "which",
        "while", "who", "whom", "why", "will", "with", "would", "you", "your",
        "yours", "notes", "note", "please",
    }
)
_NON_WORD = re.compile(r"[^\w\s]+")
_SENTENCE_END = re.compile(r"(?<=[.!?])\s+|\n+")

# Device-class overrides for constrained hardware
_PROFILE_OVERRIDES: dict[str, dict[str, float | int]] = {
    "desktop": {},
    "mobile": {
        "top_k": 8,
        "max_context_chars": 6000,
        "min_top_score": 0.06,
        "min_score": 0.12,
    },
}


@dataclass(frozen=True)
class RetrievalOptions:
    """Tunable retrieval thresholds. Defaults are hand-tuned, not optimal."""

    top_k: int = 12
    max_context_chars: int = 8000
    min_score: float = 0.18
    min_top_score: float = 0.12
    max_notes: int = 4
    max_chunks_per_note: int = 2
    fallback_chunks: int = 4
    snippet_chars: int = 180
    max_keywords: int = 6

    def for_profile(self, profile: str | None) -> "RetrievalOptions":
        """Apply device-class overrides (``"desktop"`` or ``"mobile"``)."""
        key = (profile or "desktop").lower()
        if key not in _PROFILE_OVERRIDES:
            raise ValueError(f"Unknown device profile: {profile!r}")
        return replace(self, **_PROFILE_OVERRIDES[key])

    def with_overrides(self, **overrides) -> "RetrievalOptions":
        """Copy with caller-supplied values; ``None`` means keep the default."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values) if values else self


class RetrievalService:
    """Turns a question into selected chunks plus a bounded context."""

    def __init__(self, embedder: EmbeddingProvider, search: SimilaritySearch):
        self._embedder = embedder
        self._search = search

    async def retrieve(
        self,
        owner_id: str,
        question: str,
        options: RetrievalOptions | None = None,
    ) -> RetrievalResult:
        options = options or RetrievalOptions()
        keywords = self.extract_keywords(question, options.max_keywords)

        query_vector = await self._embedder.embed(question)
        candidates = await self._search.search(owner_id, query_vector, options.top_k)
        top_score = candidates[0].score if candidates else 0.0

        if top_score < options.min_top_score:
            logger.info(
                "Retrieval gate closed for owner=%s: top_score=%.3f < %.3f (%d candidates)",
                owner_id,
                top_score,
                options.min_top_score,
                len(candidates),
            )
            return RetrievalResult(
                has_match=False,
                candidates=candidates,
                keywords=keywords,
                top_score=top_score,
            )

        selected = self.select_chunks(candidates, options)
        context = self.build_context(selected, options.max_context_chars)

        logger.info(
            "Retrieved for owner=%s: top_score=%.3f, selected=%d chunks from %d sources, context=%d chars",
            owner_id,
            top_score,
            len(selected),
            len({s.source_id for s in selected}),
            len(context),
        )
        return RetrievalResult(
            has_match=True,
            candidates=candidates,
            selected_chunks=selected,
            context_text=context,
            keywords=keywords,
            top_score=top_score,
        )

    # ── Selection & context ──────────────────────────────────────────

    @staticmethod
    def select_chunks(
        candidates: list[ScoredChunk], options: RetrievalOptions
    ) -> list[ScoredChunk]:
        """Pick chunks at or above ``min_score`` under the per-source caps.

        ``candidates`` must already be sorted by descending score. When nothing
        clears ``min_score`` the top ``fallback_chunks`` are returned as-is.
        """
        picked: list[ScoredChunk] = []
        per_source: dict[str, int] = {}

        for candidate in candidates:
            if candidate.score < options.min_score:
                continue
            count = per_source.get(candidate.source_id, 0)
            if count == 0 and len(per_source) >= options.max_notes:
                continue
            if count >= options.max_chunks_per_note:
                continue
            picked.append(candidate)
            per_source[candidate.source_id] = count + 1

        if not picked:
            return candidates[: max(0, options.fallback_chunks)]
        return picked

    @staticmethod
    def build_context(selected: list[ScoredChunk], max_chars: int) -> str:
        """Group chunks by source and concatenate them within ``max_chars``.

        Headers and chunk blocks are appended whole or not at all.
        """
        groups: dict[str, list[Chunk]] = {}
        for scored in selected:
            groups.setdefault(scored.source_id, []).append(scored.chunk)

        out = ""
        for chunks in groups.values():
            first = chunks[0]
            kind = "DOCUMENT" if first.source_type == SourceType.DOCUMENT else "NOTE"
            header = f"=== {kind}: {first.source_title} ===\n"
            if len(out) + len(header) > max_chars:
                break
            out += header

            for chunk in chunks:
                if chunk.page_number is not None and chunk.source_type == SourceType.DOCUMENT:
                    block = f"[Page {chunk.page_number}]\n{chunk.body}{CONTEXT_SEPARATOR}"
                else:
                    block = f"{chunk.body}{CONTEXT_SEPARATOR}"
                if len(out) + len(block) > max_chars:
                    break
                out += block

            if len(out) >= max_chars:
                break

        return out.strip()

    # ── Keywords, snippets & highlights ──────────────────────────────

    @staticmethod
    def extract_keywords(question: str, limit: int = 6) -> list[str]:
        """Lower-cased, de-duplicated content words of at least 3 characters."""
        cleaned = _NON_WORD.sub(" ", (question or "").lower())
        keywords: list[str] = []
        for token in cleaned.split():
            if len(token) < 3 or token in _STOP_WORDS or token in keywords:
                continue
            keywords.append(token)
            if len(keywords) >= limit:
                break
        return keywords

    @staticmethod
    def build_snippet(chunk: Chunk, keywords: list[str], window: int = 180) -> str:
        """Excerpt of ``window`` chars centred on the first keyword hit.

        Falls back to the start of the chunk body; truncated edges get an
        ellipsis.
        """
        text = " ".join(chunk.body.split())
        if len(text) <= window:
            return text

        lowered = text.lower()
        hits = [pos for pos in (lowered.find(k) for k in keywords) if pos >= 0]
        if hits:
            centre = min(hits)
            start = max(0, centre - window // 2)
        else:
            start = 0
        end = min(len(text), start + window)
        start = max(0, end - window)

        snippet = text[start:end].strip()
        if start > 0:
            snippet = ELLIPSIS + snippet
        if end < len(text):
            snippet = snippet + ELLIPSIS
        return snippet

    @staticmethod
    def build_note_highlights(
        selected: list[ScoredChunk],
        keywords: list[str],
        *,
        max_sources: int = 3,
        max_sentences: int = 2,
    ) -> str:
        """The "From your notes:" block: keyword sentences per source.

        Sources are ordered by their best chunk score. Returns ``""`` when no
        sentence contains a keyword.
        """
        if not keywords:
            return ""

        best: dict[str, float] = {}
        titles: dict[str, str] = {}
        sentences: dict[str, list[str]] = {}
        for scored in selected:
            sid = scored.source_id
            best[sid] = max(best.get(sid, float("-inf")), scored.score)
            titles.setdefault(sid, scored.chunk.source_title)
            found = sentences.setdefault(sid, [])
            for sentence in _SENTENCE_END.split(scored.chunk.body):
                sentence = " ".join(sentence.split())
                if not sentence or sentence in found or len(found) >= max_sentences:
                    continue
                lowered = sentence.lower()
                if any(k in lowered for k in keywords):
                    found.append(sentence)

        ranked = sorted(
            (sid for sid in sentences if sentences[sid]),
            key=lambda sid: best[sid],
            reverse=True,
        )[:max_sources]
        if not ranked:
            return ""

        lines = ["From your notes:"]
        for sid in ranked:
            for sentence in sentences[sid]:
                lines.append(f"- {titles[sid]}: {sentence}")
        return "\n".join(lines)

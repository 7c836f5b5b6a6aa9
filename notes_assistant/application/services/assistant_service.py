"""Knowledge assistant service — the read path behind ``ask_from_notes``.

    retrieve → (no match) → web knowledge → generic fallback
    retrieve → (match)    → on-device → hosted → web knowledge → generic

Every stage failure is a decline, so the caller always gets a ``RAGAnswer``.
"""

import logging
import time
from dataclasses import dataclass

from notes_assistant.application.interfaces.local_llm import ProgressTextCallback
from notes_assistant.application.services.answer_formatting import format_answer
from notes_assistant.application.services.answer_strategies import (
    AnswerRequest,
    AnswerStrategy,
)
from notes_assistant.application.services.retrieval_service import (
    RetrievalOptions,
    RetrievalService,
)
from notes_assistant.domain.entities import (
    AnswerSource,
    AnswerStage,
    RAGAnswer,
    RetrievalResult,
    ScoredChunk,
)

logger = logging.getLogger(__name__)

NOTHING_FOUND_MESSAGE = "I couldn't find anything relevant in your notes for that question."


@dataclass
class AskParams:
    """Caller-facing parameters. ``None`` tuning values fall back to defaults."""

    owner_id: str
    question: str
    top_k: int | None = None
    max_context_chars: int | None = None
    prefer_local_llm: bool = False
    min_score: float | None = None
    min_top_score: float | None = None
    max_notes: int | None = None
    max_chunks_per_note: int | None = None
    device_profile: str | None = None
    on_local_progress_text: ProgressTextCallback | None = None


class KnowledgeAssistantService:
    """Answers questions from an owner's index through an ordered strategy chain."""

    def __init__(
        self,
        retrieval: RetrievalService,
        strategies: list[AnswerStrategy],
        *,
        default_options: RetrievalOptions | None = None,
        default_profile: str = "desktop",
    ):
        self._retrieval = retrieval
        self._strategies = list(strategies)
        # Unprofiled; exactly one profile is applied per request
        self._defaults = default_options or RetrievalOptions()
        self._default_profile = default_profile

    @property
    def strategies(self) -> list[AnswerStrategy]:
        return list(self._strategies)

    def options_for(self, params: AskParams) -> RetrievalOptions:
        options = self._defaults.for_profile(params.device_profile or self._default_profile)
        return options.with_overrides(
            top_k=params.top_k,
            max_context_chars=params.max_context_chars,
            min_score=params.min_score,
            min_top_score=params.min_top_score,
            max_notes=params.max_notes,
            max_chunks_per_note=params.max_chunks_per_note,
        )

    async def ask_from_notes(self, params: AskParams) -> RAGAnswer:
        start = time.monotonic()
        options = self.options_for(params)
        retrieval = await self._safe_retrieve(params, options)

        sources = self.build_sources(retrieval, options) if retrieval.has_match else []
        highlights = (
            self._retrieval.build_note_highlights(retrieval.selected_chunks, retrieval.keywords)
            if retrieval.has_match
            else ""
        )
        request = AnswerRequest(
            question=params.question,
            context_text=retrieval.context_text,
            has_match=retrieval.has_match and bool(retrieval.context_text),
            prefer_local=params.prefer_local_llm,
            on_progress_text=params.on_local_progress_text,
        )

        for strategy in self._strategies:
            try:
                if not await strategy.is_available(request):
                    logger.debug("Answer stage %s unavailable", strategy.stage.value)
                    continue
                reply = await strategy.try_answer(request)
            except Exception as e:
                logger.warning("Answer stage %s failed: %s", strategy.stage.value, e)
                continue

            if reply is None:
                logger.info("Answer stage %s declined", strategy.stage.value)
                continue

            duration_ms = int((time.monotonic() - start) * 1000)
            logger.info(
                "Answered owner=%s via %s in %dms (%d sources)",
                params.owner_id,
                strategy.stage.value,
                duration_ms,
                len(sources),
            )
            return RAGAnswer(
                answer=format_answer(
                    reply.answer_line,
                    reply.details,
                    strategy.stage,
                    retrieval.selected_chunks,
                    highlights,
                ),
                sources=sources,
                used=strategy.stage,
                reference_url=reply.reference_url,
            )

        logger.info("No answer stage accepted the question for owner=%s", params.owner_id)
        return RAGAnswer(answer=NOTHING_FOUND_MESSAGE, sources=[], used=AnswerStage.NONE)

    async def _safe_retrieve(
        self, params: AskParams, options: RetrievalOptions
    ) -> RetrievalResult:
        try:
            return await self._retrieval.retrieve(params.owner_id, params.question, options)
        except Exception:
            logger.exception("Retrieval failed for owner=%s, answering without notes", params.owner_id)
            return RetrievalResult(has_match=False)

    def build_sources(
        self, retrieval: RetrievalResult, options: RetrievalOptions
    ) -> list[AnswerSource]:
        return [
            self._to_source(scored, retrieval.keywords, options.snippet_chars)
            for scored in retrieval.selected_chunks
        ]

    def _to_source(
        self, scored: ScoredChunk, keywords: list[str], snippet_chars: int
    ) -> AnswerSource:
        chunk = scored.chunk
        return AnswerSource(
            source_id=chunk.source_id,
            source_type=chunk.source_type,
            source_title=chunk.source_title,
            chunk_id=chunk.chunk_id,
            snippet=self._retrieval.build_snippet(chunk, keywords, snippet_chars),
            score=scored.score,
            page_number=chunk.page_number,
        )

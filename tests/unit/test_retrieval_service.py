"""Unit tests for the RetrievalService: gate, selection, context, snippets."""

import math

import pytest

from notes_assistant.application.interfaces import EmbeddingProvider, VectorStore
from notes_assistant.application.services.retrieval_service import (
    CONTEXT_SEPARATOR,
    ELLIPSIS,
    RetrievalOptions,
    RetrievalService,
)
from notes_assistant.application.services.similarity_search import SimilaritySearch
from notes_assistant.domain.entities import Chunk, ScoredChunk, SourceType


class FakeEmbedder(EmbeddingProvider):
    """Returns the same query vector for every text."""

    def __init__(self, vector: list[float]):
        self.vector = vector
        self.calls: list[str] = []

    async def initialize(self, on_progress=None) -> None:
        return None

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        return list(self.vector)

    @property
    def dimensions(self) -> int:
        return len(self.vector)

    @property
    def is_ready(self) -> bool:
        return True


class FakeVectorStore(VectorStore):
    def __init__(self, chunks: list[Chunk]):
        self.chunks = chunks

    async def upsert(self, chunks):
        self.chunks.extend(chunks)

    async def delete_by_source(self, owner_id, source_id):
        return 0

    async def replace_source(self, owner_id, source_id, chunks):
        return None

    async def get_all_for_owner(self, owner_id):
        return [c for c in self.chunks if c.owner_id == owner_id]

    async def count_for_source(self, owner_id, source_id):
        return 0


def _vector_with_score(score: float) -> list[float]:
    """A 2-d unit vector whose cosine against ``[1, 0]`` equals ``score``."""
    return [score, math.sqrt(1.0 - score * score)]


def _chunk(
    source_id: str,
    index: int = 0,
    body: str = "text",
    *,
    score: float = 0.9,
    source_type: SourceType = SourceType.NOTE,
    page_number: int | None = None,
    title: str | None = None,
) -> Chunk:
    title = title or source_id
    header = f"# {title}" if page_number is None else f"# {title} (Page {page_number})"
    return Chunk(
        chunk_id=f"{source_id}::{index}",
        owner_id="u1",
        source_id=source_id,
        source_type=source_type,
        source_title=title,
        chunk_index=index,
        content=f"{header}\n\n{body}",
        page_number=page_number,
        vector=_vector_with_score(score),
    )


def _scored(chunk: Chunk, score: float) -> ScoredChunk:
    return ScoredChunk(chunk=chunk, score=score)


def _service(chunks: list[Chunk]) -> RetrievalService:
    return RetrievalService(FakeEmbedder([1.0, 0.0]), SimilaritySearch(FakeVectorStore(chunks)))


# ── Relevance gate ──


@pytest.mark.asyncio
async def test_gate_closes_below_min_top_score():
    service = _service([_chunk("n1", score=0.05)])

    result = await service.retrieve("u1", "What is the capital of Mars?")

    assert result.has_match is False
    assert result.selected_chunks == []
    assert result.context_text == ""
    assert result.top_score == pytest.approx(0.05)


@pytest.mark.asyncio
async def test_gate_opens_at_or_above_min_top_score():
    service = _service([_chunk("n1", body="Mars has two moons.", score=0.5)])

    result = await service.retrieve("u1", "How many moons does Mars have?")

    assert result.has_match is True
    assert [s.source_id for s in result.selected_chunks] == ["n1"]
    assert "Mars has two moons." in result.context_text


@pytest.mark.asyncio
async def test_empty_index_never_matches():
    result = await _service([]).retrieve("u1", "anything")

    assert result.has_match is False
    assert result.top_score == 0.0


@pytest.mark.asyncio
@pytest.mark.parametrize("score", [0.05, 0.13, 0.2, 0.6])
async def test_raising_the_gate_never_turns_a_miss_into_a_match(score: float):
    service = _service([_chunk("n1", score=score)])
    low = await service.retrieve("u1", "q", RetrievalOptions(min_top_score=0.1))
    high = await service.retrieve("u1", "q", RetrievalOptions(min_top_score=0.3))

    if not low.has_match:
        assert not high.has_match
    if high.has_match:
        assert low.has_match


# ── Diversity selection ──


def test_selection_caps_sources_and_chunks_per_source():
    candidates = [
        _scored(_chunk(f"s{s}", index=i), 0.9 - 0.01 * (s * 3 + i))
        for s in range(6)
        for i in range(3)
    ]
    picked = RetrievalService.select_chunks(candidates, RetrievalOptions())

    per_source: dict[str, int] = {}
    for scored in picked:
        per_source[scored.source_id] = per_source.get(scored.source_id, 0) + 1

    assert len(per_source) == 4
    assert all(count <= 2 for count in per_source.values())
    assert list(per_source) == ["s0", "s1", "s2", "s3"]


def test_selection_drops_chunks_below_min_score():
    candidates = [
        _scored(_chunk("a"), 0.8),
        _scored(_chunk("b"), 0.3),
        _scored(_chunk("c"), 0.1),
    ]
    picked = RetrievalService.select_chunks(candidates, RetrievalOptions())

    assert [s.source_id for s in picked] == ["a", "b"]


def test_selection_falls_back_to_top_chunks_when_none_clear_min_score():
    candidates = [_scored(_chunk(f"n{i}"), 0.15 - 0.001 * i) for i in range(7)]
    picked = RetrievalService.select_chunks(candidates, RetrievalOptions())

    assert [s.source_id for s in picked] == ["n0", "n1", "n2", "n3"]


@pytest.mark.asyncio
async def test_weak_match_above_gate_uses_fallback_chunks():
    service = _service([_chunk(f"n{i}", score=0.15) for i in range(6)])

    result = await service.retrieve("u1", "vague question")

    assert result.has_match is True
    assert len(result.selected_chunks) == 4


# ── Context assembly ──


def test_context_groups_chunks_under_source_headers():
    selected = [
        _scored(_chunk("n1", 0, "First part.", title="Trip"), 0.9),
        _scored(_chunk("d1", 0, "Invoice total.", source_type=SourceType.DOCUMENT,
                       page_number=2, title="bill.pdf"), 0.8),
        _scored(_chunk("n1", 1, "Second part.", title="Trip"), 0.7),
    ]
    context = RetrievalService.build_context(selected, 8000)

    assert context.startswith("=== NOTE: Trip ===\nFirst part.")
    assert context.index("Second part.") < context.index("=== DOCUMENT: bill.pdf ===")
    assert "=== DOCUMENT: bill.pdf ===\n[Page 2]\nInvoice total." in context
    assert context.count("=== NOTE: Trip ===") == 1
    assert not context.endswith("---")


def test_context_respects_character_budget():
    selected = [_scored(_chunk(f"n{i}", body="x" * 300), 0.9) for i in range(10)]

    for budget in (0, 50, 400, 1000, 5000):
        assert len(RetrievalService.build_context(selected, budget)) <= budget


def test_context_never_cuts_a_block_in_half():
    selected = [
        _scored(_chunk("n1", 0, "a" * 100), 0.9),
        _scored(_chunk("n1", 1, "b" * 100), 0.8),
    ]
    header = "=== NOTE: n1 ===\n"
    budget = len(header) + 100 + len(CONTEXT_SEPARATOR) + 50
    context = RetrievalService.build_context(selected, budget)

    assert "a" * 100 in context
    assert "b" not in context.replace("n1", "")


# ── Keywords, snippets, highlights ──


def test_extract_keywords_drops_stop_words_and_duplicates():
    keywords = RetrievalService.extract_keywords(
        "What did I write about the Lisbon trip? Lisbon, trip, budget!"
    )
    assert keywords == ["write", "lisbon", "trip", "budget"]


def test_extract_keywords_honours_limit():
    keywords = RetrievalService.extract_keywords("alpha beta gamma delta epsilon zeta eta", 3)
    assert keywords == ["alpha", "beta", "gamma"]


def test_snippet_centres_on_keyword_with_ellipses():
    body = ("filler " * 60) + "the secret ingredient is saffron " + ("filler " * 60)
    chunk = _chunk("n1", body=body)

    snippet = RetrievalService.build_snippet(chunk, ["saffron"], window=80)

    assert "saffron" in snippet
    assert snippet.startswith(ELLIPSIS)
    assert snippet.endswith(ELLIPSIS)
    assert len(snippet) <= 80 + 2 * len(ELLIPSIS)


def test_snippet_without_hits_starts_at_beginning():
    chunk = _chunk("n1", body="Opening line. " + "more words " * 40)

    snippet = RetrievalService.build_snippet(chunk, ["absent"], window=50)

    assert snippet.startswith("Opening line.")
    assert snippet.endswith(ELLIPSIS)


def test_short_snippet_is_the_whole_body():
    chunk = _chunk("n1", body="Short   body\nwith  spacing.")
    assert RetrievalService.build_snippet(chunk, ["body"]) == "Short body with spacing."


def test_note_highlights_pick_keyword_sentences():
    selected = [
        _scored(_chunk("geo", body="Paris is the capital of France. Bananas are yellow.",
                       title="Geography"), 0.7),
        _scored(_chunk("food", body="Nothing relevant here."), 0.9),
    ]
    highlights = RetrievalService.build_note_highlights(selected, ["capital"])

    assert highlights == "From your notes:\n- Geography: Paris is the capital of France."


def test_note_highlights_empty_without_keyword_hits():
    selected = [_scored(_chunk("n1", body="Unrelated sentence."), 0.9)]
    assert RetrievalService.build_note_highlights(selected, ["capital"]) == ""
    assert RetrievalService.build_note_highlights(selected, []) == ""


# ── Options ──


def test_mobile_profile_lowers_budgets():
    options = RetrievalOptions().for_profile("mobile")

    assert options.top_k == 8
    assert options.max_context_chars == 6000
    assert options.min_top_score == pytest.approx(0.06)
    assert options.min_score == pytest.approx(0.12)
    assert RetrievalOptions().for_profile(None) == RetrievalOptions()


def test_unknown_profile_raises():
    with pytest.raises(ValueError):
        RetrievalOptions().for_profile("watch")


def test_overrides_ignore_none():
    options = RetrievalOptions().with_overrides(top_k=3, min_score=None)

    assert options.top_k == 3
    assert options.min_score == RetrievalOptions().min_score

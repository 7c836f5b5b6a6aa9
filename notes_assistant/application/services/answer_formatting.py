"""Uniform formatting of answers, whichever stage produced them."""

from notes_assistant.domain.entities import AnswerStage, ScoredChunk, SourceType

_MAX_QUOTED_CHARS = 80
_TERMINAL_PUNCTUATION = ".!?:;"
_CITED_STAGES = (AnswerStage.LOCAL, AnswerStage.HOSTED)


def quote_if_terse(answer_line: str) -> str:
    """Wrap short entity-like answers in double quotes."""
    text = answer_line.strip()
    if not text or len(text) > _MAX_QUOTED_CHARS:
        return text
    if text[-1] in _TERMINAL_PUNCTUATION:
        return text
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        return text
    return f'"{text}"'


def build_inline_citation(selected: list[ScoredChunk], max_titles: int = 3) -> str:
    """``according to your notes `A, B.pdf (p. 3)` `` for the best-scoring sources.

    Documents cite the page of their best chunk. Returns ``""`` for no chunks.
    """
    best: dict[str, ScoredChunk] = {}
    for scored in selected:
        current = best.get(scored.source_id)
        if current is None or scored.score > current.score:
            best[scored.source_id] = scored

    ranked = sorted(best.values(), key=lambda s: s.score, reverse=True)[:max_titles]
    if not ranked:
        return ""

    labels = []
    for scored in ranked:
        chunk = scored.chunk
        if chunk.source_type == SourceType.DOCUMENT and chunk.page_number is not None:
            labels.append(f"{chunk.source_title} (p. {chunk.page_number})")
        else:
            labels.append(chunk.source_title)
    return f"according to your notes `{', '.join(labels)}`"


def format_answer(
    answer_line: str,
    details: list[str],
    stage: AnswerStage,
    selected: list[ScoredChunk],
    highlights: str = "",
) -> str:
    """Assemble the final text.

    Layout: the (possibly quoted) answer line with its citation, a blank line,
    the supporting lines, then the "From your notes:" block last. Citations
    are only added when a model answered from note context.
    """
    first = quote_if_terse(answer_line)
    if stage in _CITED_STAGES:
        citation = build_inline_citation(selected)
        if citation:
            first = f"{first} {citation}"

    parts = [first]
    supporting = [line for line in details if line.strip()]
    if supporting:
        parts.append("\n".join(supporting))
    if highlights:
        parts.append(highlights)
    return "\n\n".join(parts)

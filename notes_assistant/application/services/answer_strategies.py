"""Answer strategies — the ordered stages of the answer fallback chain.

Each strategy either produces a ``StrategyReply`` or declines (``None``).
The assistant service iterates them in order; adding or reordering a stage
is a change to that list, not to the control flow.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from notes_assistant.application.interfaces.chat_provider import ChatProvider
from notes_assistant.application.interfaces.knowledge_provider import KnowledgeProvider
from notes_assistant.application.interfaces.local_llm import LocalLLM, ProgressTextCallback
from notes_assistant.domain.entities import AnswerStage, ChatMessage

logger = logging.getLogger(__name__)

# ── Prompts ─────────────────────────────────────────────────────────

DONT_KNOW_REPLY = "I don't know based on your notes."

NOTES_SYSTEM_PROMPT = (
    "You are a helpful assistant. Use the provided note excerpts to answer the user's question. "
    "Output format: \n"
    "- Line 1: ONLY the short final answer (no extra words).\n"
    "- Lines 2-4: 2-3 short lines of general information about the answer (common knowledge).\n"
    "Do NOT mention the notes, sources, excerpts, or citations in your output.\n"
    f"If the notes do not contain enough information to answer, output exactly: {DONT_KNOW_REPLY}"
)

WEB_SYSTEM_PROMPT = (
    "You are a helpful assistant. Answer the user's question using ONLY the encyclopedia summary provided. "
    "Output format: \n"
    "- Line 1: ONLY the short final answer (no extra words).\n"
    "- Lines 2-4: 2-3 short lines of supporting information taken from the summary.\n"
    f"If the summary does not answer the question, output exactly: {DONT_KNOW_REPLY}"
)

_DONT_KNOW = re.compile(
    r"^i\s+(?:don['’]t|do not)\s+know\b|(?:don['’]t|do not) know based on",
    re.IGNORECASE,
)
_ANSWER_PREFIX = re.compile(r"^answer\s*:\s*", re.IGNORECASE)
_CODE_FENCE = re.compile(r"^```[\w-]*\n?|\n?```$")
_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.IGNORECASE | re.DOTALL)
_LEADING_QUESTION = re.compile(
    r"^(?:(?:please\s+)?(?:tell me|explain|describe|define)\s+(?:about\s+)?"
    r"|(?:who|what|where|when|which|why|how)\s+(?:is|are|was|were|does|do|did)\s+"
    r"|(?:who|what)(?:'s|’s)\s+)",
    re.IGNORECASE,
)
_LEADING_ARTICLE = re.compile(r"^(?:the|a|an)\s+", re.IGNORECASE)
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


def build_notes_prompt(question: str, context_text: str) -> str:
    return f"Question:\n{question}\n\nNote excerpts (may be partial):\n{context_text}"


def build_web_prompt(question: str, title: str, extract: str) -> str:
    return f"Question:\n{question}\n\nEncyclopedia summary ({title}):\n{extract}"


def strip_to_entity(question: str) -> str:
    """Reduce a question to its bare subject: "Who is Ada Lovelace?" → "Ada Lovelace"."""
    text = " ".join((question or "").split())
    text = _LEADING_QUESTION.sub("", text)
    text = text.rstrip(" ?!.;:")
    text = _LEADING_ARTICLE.sub("", text)
    return text.strip()


def leading_sentences(text: str, count: int = 2) -> str:
    sentences = [s.strip() for s in _SENTENCE_SPLIT.split(text.strip()) if s.strip()]
    return " ".join(sentences[:count])


# ── Replies ─────────────────────────────────────────────────────────


@dataclass
class StrategyReply:
    """A non-declined answer: the terse first line plus up to 3 detail lines."""

    answer_line: str
    details: list[str] = field(default_factory=list)
    reference_url: str | None = None


def clean_reply(raw: str) -> str:
    """Strip reasoning blocks and a wrapping markdown code fence."""
    text = _THINK_BLOCK.sub("", raw or "").strip()
    if text.startswith("```"):
        text = _CODE_FENCE.sub("", text).strip()
    return text


def parse_reply(raw: str) -> StrategyReply | None:
    """Parse the line-1-answer contract. A "don't know" first line is a decline."""
    lines = [line.strip() for line in clean_reply(raw).splitlines() if line.strip()]
    if not lines:
        return None

    answer_line = _ANSWER_PREFIX.sub("", lines[0]).strip()
    if not answer_line or _DONT_KNOW.search(answer_line):
        return None
    return StrategyReply(answer_line=answer_line, details=lines[1:4])


# ── Strategy port ───────────────────────────────────────────────────


@dataclass
class AnswerRequest:
    question: str
    context_text: str = ""
    has_match: bool = False
    prefer_local: bool = False
    on_progress_text: ProgressTextCallback | None = None


class AnswerStrategy(ABC):
    """One stage of the fallback chain."""

    stage: AnswerStage

    @abstractmethod
    async def is_available(self, request: AnswerRequest) -> bool:
        """Cheap capability check; an unavailable stage is skipped."""
        ...

    @abstractmethod
    async def try_answer(self, request: AnswerRequest) -> StrategyReply | None:
        """Answer the question, or return ``None`` to decline."""
        ...


# ── Concrete strategies ─────────────────────────────────────────────


class LocalModelStrategy(AnswerStrategy):
    """On-device model, used only when the caller prefers it and it can run."""

    stage = AnswerStage.LOCAL

    def __init__(self, local_llm: LocalLLM):
        self._llm = local_llm

    async def is_available(self, request: AnswerRequest) -> bool:
        if not (request.has_match and request.context_text and request.prefer_local):
            return False
        return await self._llm.is_available()

    async def try_answer(self, request: AnswerRequest) -> StrategyReply | None:
        raw = await self._llm.complete(
            NOTES_SYSTEM_PROMPT,
            build_notes_prompt(request.question, request.context_text),
            on_progress_text=request.on_progress_text,
            temperature=0.2,
        )
        return parse_reply(raw)


class HostedModelStrategy(AnswerStrategy):
    """Hosted chat model with the same prompt and reply contract."""

    stage = AnswerStage.HOSTED

    def __init__(self, chat_provider: ChatProvider, model: str, *, max_tokens: int = 1200):
        self._chat = chat_provider
        self._model = model
        self._max_tokens = max_tokens

    async def is_available(self, request: AnswerRequest) -> bool:
        return bool(request.has_match and request.context_text and self._chat.is_configured)

    async def try_answer(self, request: AnswerRequest) -> StrategyReply | None:
        result = await self._chat.complete(
            [
                ChatMessage(role="system", content=NOTES_SYSTEM_PROMPT),
                ChatMessage(
                    role="user",
                    content=build_notes_prompt(request.question, request.context_text),
                ),
            ],
            self._model,
            temperature=0.2,
            max_tokens=self._max_tokens,
        )
        return parse_reply(result.content)


class WebKnowledgeStrategy(AnswerStrategy):
    """Public encyclopedia summary, composed by the hosted model when configured."""

    stage = AnswerStage.WEB

    def __init__(
        self,
        knowledge_provider: KnowledgeProvider,
        chat_provider: ChatProvider | None = None,
        model: str = "",
        *,
        enabled: bool = True,
    ):
        self._knowledge = knowledge_provider
        self._chat = chat_provider
        self._model = model
        self._enabled = enabled

    async def is_available(self, request: AnswerRequest) -> bool:
        return self._enabled and bool(strip_to_entity(request.question))

    async def try_answer(self, request: AnswerRequest) -> StrategyReply | None:
        entity = strip_to_entity(request.question)
        summary = await self._knowledge.summarize(entity)
        if summary is None:
            logger.info("No web summary found for %r", entity)
            return None

        if self._chat is not None and self._chat.is_configured:
            try:
                result = await self._chat.complete(
                    [
                        ChatMessage(role="system", content=WEB_SYSTEM_PROMPT),
                        ChatMessage(
                            role="user",
                            content=build_web_prompt(
                                request.question, summary.title, summary.extract
                            ),
                        ),
                    ],
                    self._model,
                    temperature=0.2,
                    max_tokens=600,
                )
                reply = parse_reply(result.content)
                if reply is not None:
                    reply.reference_url = summary.url
                    return reply
            except Exception as e:
                logger.warning("Composing web answer failed, using the summary: %s", e)

        return StrategyReply(
            answer_line=summary.title,
            details=[leading_sentences(summary.extract, 2)],
            reference_url=summary.url,
        )

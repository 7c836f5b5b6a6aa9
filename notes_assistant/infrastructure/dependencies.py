"""FastAPI dependency injection — wires infrastructure to application layer.

The embedder, vector store and indexing registry are process-scoped: one
``AssistantContainer`` is built in the lifespan and stored on ``app.state``.
Routers receive its parts through the ``get_*`` dependencies below, which
tests replace with ``app.dependency_overrides``.
"""

import logging
from dataclasses import dataclass

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notes_assistant.application.interfaces import (
    ChatProvider,
    EmbeddingProvider,
    SourceFeed,
    VectorStore,
)
from notes_assistant.application.services import (
    AnswerStrategy,
    Chunker,
    HostedModelStrategy,
    IndexingRegistry,
    KnowledgeAssistantService,
    LocalModelStrategy,
    RetrievalService,
    SimilaritySearch,
    SSEManager,
    WebKnowledgeStrategy,
)
from notes_assistant.config import Settings
from notes_assistant.infrastructure.database.repositories import SQLAlchemyVectorStore
from notes_assistant.infrastructure.embeddings import SentenceTransformerEmbeddingProvider
from notes_assistant.infrastructure.feed import InMemorySourceFeed
from notes_assistant.infrastructure.knowledge import WikipediaKnowledgeProvider
from notes_assistant.infrastructure.local_llm import OllamaLocalLLM
from notes_assistant.infrastructure.openrouter import (
    OpenRouterClient,
    OpenRouterEmbeddingProvider,
)

logger = logging.getLogger(__name__)


@dataclass
class AssistantContainer:
    """Process-scoped components shared by every request."""

    settings: Settings
    embedder: EmbeddingProvider
    vector_store: VectorStore
    feed: SourceFeed
    sse_manager: SSEManager
    registry: IndexingRegistry
    assistant: KnowledgeAssistantService


def build_embedder(settings: Settings) -> EmbeddingProvider:
    backend = settings.embedding_backend.lower()
    if backend == "openrouter":
        return OpenRouterEmbeddingProvider(
            api_key=settings.openrouter_api_key,
            base_url=settings.openrouter_base_url,
            app_name=settings.openrouter_app_name,
            model=settings.openrouter_embedding_model,
            model_dimensions=settings.embedding_dimensions,
        )
    if backend != "local":
        raise ValueError(f"Unknown embedding backend: {settings.embedding_backend!r}")
    return SentenceTransformerEmbeddingProvider(
        model_name=settings.embedding_model,
        dimensions=settings.embedding_dimensions,
    )


def build_strategies(settings: Settings, chat_provider: ChatProvider) -> list[AnswerStrategy]:
    """The answer fallback chain, in order."""
    strategies: list[AnswerStrategy] = []
    if settings.local_llm_enabled:
        strategies.append(
            LocalModelStrategy(
                OllamaLocalLLM(
                    base_url=settings.local_llm_base_url,
                    model=settings.local_llm_model,
                    require_acceleration=settings.local_llm_require_acceleration,
                )
            )
        )
    strategies.append(HostedModelStrategy(chat_provider, settings.answer_model))
    strategies.append(
        WebKnowledgeStrategy(
            WikipediaKnowledgeProvider(
                base_url=settings.wikipedia_base_url,
                app_name=settings.openrouter_app_name,
            ),
            chat_provider,
            settings.answer_model,
            enabled=settings.web_fallback_enabled,
        )
    )
    return strategies


def build_container(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    *,
    embedder: EmbeddingProvider | None = None,
    feed: SourceFeed | None = None,
    sse_manager: SSEManager | None = None,
) -> AssistantContainer:
    """Assemble the read and write paths from settings."""
    embedder = embedder or build_embedder(settings)
    vector_store = SQLAlchemyVectorStore(session_factory)
    feed = feed or InMemorySourceFeed()
    sse_manager = sse_manager or SSEManager()

    chunker = Chunker(
        target_chars=settings.chunk_target_chars,
        overlap_chars=settings.chunk_overlap_chars,
    )
    registry = IndexingRegistry(feed, chunker, embedder, vector_store, event_sink=sse_manager)

    chat_provider = OpenRouterClient(
        api_key=settings.openrouter_api_key,
        base_url=settings.openrouter_base_url,
        app_name=settings.openrouter_app_name,
        max_attempts=settings.openrouter_max_attempts,
        retry_base_delay=settings.openrouter_retry_base_delay,
    )
    if not chat_provider.is_configured:
        logger.warning("OPENROUTER_API_KEY is not configured; hosted answers are disabled.")

    assistant = KnowledgeAssistantService(
        RetrievalService(embedder, SimilaritySearch(vector_store)),
        build_strategies(settings, chat_provider),
        default_options=settings.retrieval_base(),
        default_profile=settings.device_profile,
    )

    return AssistantContainer(
        settings=settings,
        embedder=embedder,
        vector_store=vector_store,
        feed=feed,
        sse_manager=sse_manager,
        registry=registry,
        assistant=assistant,
    )


# ── FastAPI dependencies ────────────────────────────────────────────


def get_container(request: Request) -> AssistantContainer:
    return request.app.state.container


def get_assistant_service(request: Request) -> KnowledgeAssistantService:
    return get_container(request).assistant


def get_indexing_registry(request: Request) -> IndexingRegistry:
    return get_container(request).registry


def get_source_feed(request: Request) -> SourceFeed:
    return get_container(request).feed


def get_sse_manager(request: Request) -> SSEManager:
    return get_container(request).sse_manager

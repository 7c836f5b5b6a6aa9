"""End-to-end tests for the source feed, indexing and ask endpoints.

The app is assembled without its lifespan: an in-memory SQLite store, a
deterministic keyword embedder and a canned hosted model stand in for the
real backends.
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from notes_assistant.application.interfaces import ChatProvider, EmbeddingProvider
from notes_assistant.application.services import (
    HostedModelStrategy,
    KnowledgeAssistantService,
    RetrievalService,
    SimilaritySearch,
)
from notes_assistant.application.services.assistant_service import NOTHING_FOUND_MESSAGE
from notes_assistant.config import Settings
from notes_assistant.domain.entities import ChatCompletionResult
from notes_assistant.infrastructure.database.session import (
    build_engine,
    build_session_factory,
    create_tables,
)
from notes_assistant.infrastructure.dependencies import build_container
from notes_assistant.presentation.api.router import router as api_router

VOCABULARY = ("flour", "water", "bake", "bread", "invoice")


class KeywordEmbedder(EmbeddingProvider):
    def __init__(self):
        self._ready = False

    async def initialize(self, on_progress=None):
        self._ready = True
        if on_progress:
            on_progress(1.0)

    async def embed(self, text):
        lowered = text.lower()
        return [float(lowered.count(word)) for word in VOCABULARY]

    @property
    def dimensions(self):
        return len(VOCABULARY)

    @property
    def is_ready(self):
        return self._ready


class CannedChatProvider(ChatProvider):
    def __init__(self, reply: str):
        self.reply = reply

    @property
    def provider_name(self):
        return "canned"

    @property
    def is_configured(self):
        return True

    async def complete(self, messages, model, *, temperature=None, max_tokens=None):
        return ChatCompletionResult(model=model, content=self.reply, finish_reason="stop")


async def _make_app(reply: str = "40 minutes\nBread bakes at 220C.") -> tuple[FastAPI, object]:
    settings = Settings(
        _env_file=None,
        openrouter_api_key="",
        local_llm_enabled=False,
        web_fallback_enabled=False,
        device_profile="desktop",
    )
    engine = build_engine("sqlite:///:memory:")
    await create_tables(engine)
    container = build_container(settings, build_session_factory(engine), embedder=KeywordEmbedder())
    container.assistant = KnowledgeAssistantService(
        RetrievalService(container.embedder, SimilaritySearch(container.vector_store)),
        [HostedModelStrategy(CannedChatProvider(reply), "canned/model")],
    )

    app = FastAPI()
    app.include_router(api_router)
    app.state.container = container
    return app, engine


BREAD_NOTE = {
    "source_id": "bread",
    "title": "Bread",
    "content": "Mix flour and water.\n\nBake the bread for 40 minutes.",
}


@pytest.mark.asyncio
async def test_index_then_ask_returns_cited_answer():
    app, engine = await _make_app()
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            put = await client.put("/api/v1/owners/u1/sources", json=BREAD_NOTE)
            assert put.status_code == 200
            assert put.json()["incremental_scheduled"] is False

            start = await client.post("/api/v1/owners/u1/index")
            assert start.status_code == 202

            status = (await client.get("/api/v1/owners/u1/index/status")).json()
            assert status["status"] == "ready"
            assert status["progress"]["indexed_count"] == 1
            assert status["error"] is None

            response = await client.post(
                "/api/v1/ask",
                json={"owner_id": "u1", "question": "How long do I bake bread?"},
            )
    finally:
        await engine.dispose()

    assert response.status_code == 200
    data = response.json()
    assert data["used"] == "hosted"
    assert data["answer"].startswith('"40 minutes" according to your notes `Bread`')
    assert [s["source_id"] for s in data["sources"]] == ["bread"]
    assert data["sources"][0]["source_type"] == "note"


@pytest.mark.asyncio
async def test_ask_for_empty_index_finds_nothing():
    app, engine = await _make_app()
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post(
                "/api/v1/ask", json={"owner_id": "nobody", "question": "What is the capital of Mars?"}
            )
    finally:
        await engine.dispose()

    assert response.status_code == 200
    assert response.json() == {
        "answer": NOTHING_FOUND_MESSAGE,
        "sources": [],
        "used": "none",
        "reference_url": None,
    }


@pytest.mark.asyncio
async def test_ask_validates_request():
    app, engine = await _make_app()
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            bad_profile = await client.post(
                "/api/v1/ask", json={"owner_id": "u1", "question": "q", "device_profile": "watch"}
            )
            empty_question = await client.post("/api/v1/ask", json={"owner_id": "u1", "question": ""})
    finally:
        await engine.dispose()

    assert bad_profile.status_code == 422
    assert empty_question.status_code == 422


@pytest.mark.asyncio
async def test_single_source_indexing_errors():
    app, engine = await _make_app()
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            missing = await client.post("/api/v1/owners/u1/index/nope")

            await client.put(
                "/api/v1/owners/u1/sources",
                json={"source_id": "scan", "source_type": "document", "file_name": "scan.pdf", "pages": []},
            )
            empty_doc = await client.post("/api/v1/owners/u1/index/scan")

            await client.put("/api/v1/owners/u1/sources", json=BREAD_NOTE)
            ok = await client.post("/api/v1/owners/u1/index/bread")
    finally:
        await engine.dispose()

    assert missing.status_code == 404
    assert empty_doc.status_code == 422
    assert "No text could be extracted" in empty_doc.json()["detail"]
    assert ok.status_code == 200
    assert ok.json() == {"owner_id": "u1", "source_id": "bread", "chunk_count": 1}


@pytest.mark.asyncio
async def test_document_requires_file_name():
    app, engine = await _make_app()
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.put(
                "/api/v1/owners/u1/sources",
                json={"source_id": "doc", "source_type": "document", "pages": [{"page_number": 1, "text": "x"}]},
            )
    finally:
        await engine.dispose()

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_delete_source_removes_chunks():
    app, engine = await _make_app()
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            await client.put("/api/v1/owners/u1/sources", json=BREAD_NOTE)
            await client.post("/api/v1/owners/u1/index/bread")

            first = await client.delete("/api/v1/owners/u1/sources/bread")
            second = await client.delete("/api/v1/owners/u1/sources/bread")

            count = await app.state.container.vector_store.count_for_source("u1", "bread")
    finally:
        await engine.dispose()

    assert first.status_code == 204
    assert second.status_code == 404
    assert count == 0

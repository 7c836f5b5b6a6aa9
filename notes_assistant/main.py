"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import make_url

from notes_assistant.config import get_settings
from notes_assistant.infrastructure.database.session import (
    async_session_factory,
    create_tables,
    engine,
)
from notes_assistant.infrastructure.dependencies import build_container
from notes_assistant.infrastructure.logging.log_config import setup_logging
from notes_assistant.presentation.api.router import router as api_router

logger = logging.getLogger(__name__)


def _ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return
    Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan — create tables, build the shared components."""
    settings = get_settings()
    setup_logging()

    # 1. Create the database file and tables
    _ensure_sqlite_directory(settings.database_url)
    await create_tables(engine)

    # 2. Build the process-scoped embedder, store and services
    container = build_container(settings, async_session_factory)
    app.state.container = container
    logger.info(
        "Notes assistant ready (embeddings=%s, profile=%s)",
        settings.embedding_backend,
        settings.device_profile,
    )

    yield

    # Shutdown
    await container.sse_manager.shutdown()
    await engine.dispose()


def create_app() -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount API routes
    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "notes_assistant.main:app",
        host="0.0.0.0",
        port=8020,
        reload=True,
    )

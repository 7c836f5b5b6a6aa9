"""Logging setup for the notes assistant.

Levels are set per category from Settings, so chatty third-party loggers
(SQL statements, outbound HTTP, model downloads) can be turned down while
indexing and answer-chain logs stay visible.

Usage:
    from notes_assistant.infrastructure.logging.log_config import setup_logging
    setup_logging()   # once, from the FastAPI lifespan
"""

import logging
import sys

from notes_assistant.config import Settings, get_settings

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s — %(message)s"

# Settings field → logger names it controls
_CATEGORY_MAP: dict[str, tuple[str, ...]] = {
    "log_level_sql": ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite"),
    "log_level_http": ("httpx", "httpcore"),
    "log_level_uvicorn": ("uvicorn", "uvicorn.access", "uvicorn.error"),
    "log_level_indexing": (
        "notes_assistant.application.services.indexing_service",
        "notes_assistant.application.services.chunking_service",
        "notes_assistant.infrastructure.database",
    ),
    "log_level_providers": (
        "notes_assistant.infrastructure.openrouter",
        "notes_assistant.infrastructure.local_llm",
        "notes_assistant.infrastructure.knowledge",
        "notes_assistant.infrastructure.embeddings",
        "sentence_transformers",
    ),
}


def setup_logging(settings: Settings | None = None) -> dict[str, int]:
    """Apply root and per-category levels; returns the level set per logger name."""
    settings = settings or get_settings()

    root = logging.getLogger()
    root.setLevel(_parse_level(settings.log_level))
    # uvicorn installs its own handlers; tests and scripts may not have any
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(handler)

    applied: dict[str, int] = {}
    for field_name, logger_names in _CATEGORY_MAP.items():
        level = _parse_level(getattr(settings, field_name, "INFO"))
        for name in logger_names:
            logging.getLogger(name).setLevel(level)
            applied[name] = level

    logging.getLogger(__name__).debug(
        "Logging configured (root=%s, indexing=%s, providers=%s)",
        settings.log_level,
        settings.log_level_indexing,
        settings.log_level_providers,
    )
    return applied


def _parse_level(raw: str) -> int:
    """Level name to logging constant; unknown names fall back to INFO."""
    numeric = getattr(logging, (raw or "").upper(), None)
    return numeric if isinstance(numeric, int) else logging.INFO

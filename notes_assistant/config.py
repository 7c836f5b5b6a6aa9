from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

from notes_assistant.application.services.retrieval_service import RetrievalOptions

_PROJECT_DIR = Path(__file__).resolve().parents[1]
_ENV_FILES = (
    _PROJECT_DIR / ".env",
    ".env",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_title: str = "Notes Assistant API"
    app_version: str = "0.1.0"
    app_env: str = "development"
    database_url: str = "sqlite:///data/notes_assistant.db"
    cors_origins: list[str] = ["http://localhost:8080"]

    # OpenRouter configuration (hosted answer model)
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_app_name: str = "Notes Assistant"
    answer_model: str = "deepseek/deepseek-r1-0528:free"
    openrouter_max_attempts: int = 3
    openrouter_retry_base_delay: float = 1.0

    # Embeddings: "local" (sentence-transformers) or "openrouter"
    embedding_backend: str = "local"
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_dimensions: int = 384
    openrouter_embedding_model: str = "openai/text-embedding-3-small"

    # Chunking
    chunk_target_chars: int = 1200
    chunk_overlap_chars: int = 200

    # Retrieval gate defaults ("desktop" or "mobile")
    device_profile: str = "desktop"
    retrieval_top_k: int = 12
    retrieval_max_context_chars: int = 8000
    retrieval_min_score: float = 0.18
    retrieval_min_top_score: float = 0.12
    retrieval_max_notes: int = 4
    retrieval_max_chunks_per_note: int = 2
    retrieval_fallback_chunks: int = 4

    # On-device model served by a local Ollama instance
    local_llm_enabled: bool = True
    local_llm_base_url: str = "http://127.0.0.1:11434"
    local_llm_model: str = "llama3.2:1b"
    local_llm_require_acceleration: bool = True

    # Web knowledge fallback
    web_fallback_enabled: bool = True
    wikipedia_base_url: str = "https://en.wikipedia.org"

    # Logging: per-category log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "INFO"                  # Root / app-wide
    log_level_sql: str = "WARNING"           # sqlalchemy.engine: SQL queries
    log_level_http: str = "WARNING"          # httpx / httpcore: outbound HTTP
    log_level_uvicorn: str = "INFO"          # uvicorn.access / uvicorn.error
    log_level_indexing: str = "INFO"         # indexing orchestrator + vector store
    log_level_providers: str = "INFO"        # LLM, embedding and web clients

    model_config = {
        "env_file": _ENV_FILES,
        "env_file_encoding": "utf-8",
    }

    @property
    def hosted_llm_configured(self) -> bool:
        return bool(self.openrouter_api_key.strip())

    def retrieval_base(self) -> RetrievalOptions:
        """Retrieval options from settings, before any device profile."""
        return RetrievalOptions(
            top_k=self.retrieval_top_k,
            max_context_chars=self.retrieval_max_context_chars,
            min_score=self.retrieval_min_score,
            min_top_score=self.retrieval_min_top_score,
            max_notes=self.retrieval_max_notes,
            max_chunks_per_note=self.retrieval_max_chunks_per_note,
            fallback_chunks=self.retrieval_fallback_chunks,
        )

    def retrieval_defaults(self, profile: str | None = None) -> RetrievalOptions:
        """Retrieval options from settings, with device-class overrides applied."""
        return self.retrieval_base().for_profile(profile or self.device_profile)


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance — reads .env once."""
    return Settings()

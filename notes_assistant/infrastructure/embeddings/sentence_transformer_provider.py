"""Local embedding provider backed by sentence-transformers.

The model is loaded once per process. Concurrent ``initialize`` callers
await the same in-flight load; a failed load is forgotten so a later call
can try again (e.g. once the network is back).
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from notes_assistant.application.interfaces.embedding_provider import (
    EmbeddingProvider,
    ProgressCallback,
)
from notes_assistant.domain.exceptions import (
    EmbeddingDimensionError,
    EmbeddingInitializationError,
)

logger = logging.getLogger(__name__)

ModelLoader = Callable[[str], Any]


def load_sentence_transformer(model_name: str) -> Any:
    """Download (first run) and load the model. Blocking."""
    from sentence_transformers import SentenceTransformer

    return SentenceTransformer(model_name)


class SentenceTransformerEmbeddingProvider(EmbeddingProvider):
    """Infrastructure adapter — mean-pooled, unit-length sentence embeddings.

    Blocking model work runs in a worker thread so the event loop stays
    responsive while indexing.
    """

    def __init__(
        self,
        model_name: str = "sentence-transformers/all-MiniLM-L6-v2",
        dimensions: int = 384,
        *,
        model_loader: ModelLoader = load_sentence_transformer,
    ):
        self._model_name = model_name
        self._dimensions = dimensions
        self._loader = model_loader
        self._model: Any = None
        self._init_task: asyncio.Task | None = None

    @property
    def provider_name(self) -> str:
        return "sentence-transformers"

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def is_ready(self) -> bool:
        return self._model is not None

    async def initialize(self, on_progress: ProgressCallback | None = None) -> None:
        if self._model is not None:
            if on_progress:
                on_progress(1.0)
            return

        if self._init_task is None:
            self._init_task = asyncio.create_task(self._load(on_progress))
        task = self._init_task

        try:
            # shield: a cancelled caller must not cancel the shared load
            await asyncio.shield(task)
        except Exception:
            if self._init_task is task:
                self._init_task = None
            raise

    async def _load(self, on_progress: ProgressCallback | None) -> None:
        if on_progress:
            on_progress(0.0)
        logger.info("Loading embedding model %s", self._model_name)

        try:
            model = await asyncio.to_thread(self._loader, self._model_name)
        except Exception as e:
            logger.error("Failed to load embedding model %s: %s", self._model_name, e)
            raise EmbeddingInitializationError(self.provider_name, str(e)) from e

        get_dim = getattr(model, "get_sentence_embedding_dimension", None)
        actual = get_dim() if callable(get_dim) else None
        if actual is not None and actual != self._dimensions:
            raise EmbeddingInitializationError(
                self.provider_name,
                f"model {self._model_name} produces {actual}-dimensional vectors, "
                f"expected {self._dimensions}",
            )

        self._model = model
        logger.info("Embedding model ready (dims=%d)", self._dimensions)
        if on_progress:
            on_progress(1.0)

    async def embed(self, text: str) -> list[float]:
        await self.initialize()
        vector = await asyncio.to_thread(self._encode, text)
        if len(vector) != self._dimensions:
            raise EmbeddingDimensionError(self._dimensions, len(vector))
        return vector

    def _encode(self, text: str) -> list[float]:
        embedding = self._model.encode(
            text or "",
            normalize_embeddings=True,
            convert_to_numpy=True,
        )
        return [float(v) for v in embedding.tolist()]

"""OpenRouter-based embedding provider — calls the /embeddings endpoint.

Uses the same httpx client pattern as the OpenRouterClient. Vectors are
L2-normalized here because not every hosted model returns unit vectors.
"""

import logging
from typing import Any

import httpx
import numpy as np

from notes_assistant.application.interfaces.embedding_provider import (
    EmbeddingProvider,
    ProgressCallback,
)
from notes_assistant.domain.exceptions import (
    ChatProviderError,
    EmbeddingInitializationError,
)

logger = logging.getLogger(__name__)


def l2_normalize(vector: list[float]) -> list[float]:
    v = np.asarray(vector, dtype=np.float64)
    norm = np.linalg.norm(v)
    if norm == 0:
        return [float(x) for x in vector]
    return (v / norm).tolist()


class OpenRouterEmbeddingProvider(EmbeddingProvider):
    """Infrastructure adapter — generates embeddings via OpenRouter /embeddings API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://openrouter.ai/api/v1",
        app_name: str = "Notes Assistant",
        model: str = "openai/text-embedding-3-small",
        model_dimensions: int = 384,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._app_name = app_name
        self._model = model
        self._dimensions = model_dimensions
        self._http_client = http_client
        self._ready = False

    @property
    def provider_name(self) -> str:
        return "openrouter"

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def initialize(self, on_progress: ProgressCallback | None = None) -> None:
        """Nothing to download; only the credential is checked."""
        if self._ready:
            return
        if on_progress:
            on_progress(0.0)
        if not self._api_key or not self._api_key.strip():
            raise EmbeddingInitializationError(
                self.provider_name, "OpenRouter API key is not configured"
            )
        self._ready = True
        if on_progress:
            on_progress(1.0)

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "X-Title": self._app_name,
        }

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=120.0)

    async def embed(self, text: str) -> list[float]:
        await self.initialize()

        url = f"{self._base_url}/embeddings"
        payload: dict[str, Any] = {
            "model": self._model,
            "input": [text],
            "dimensions": self._dimensions,
        }

        client = await self._get_client()
        should_close = self._http_client is None

        try:
            response = await client.post(
                url, headers=self._get_headers(), json=payload
            )

            if response.status_code != 200:
                error_text = response.text[:500]
                logger.error(
                    "Embedding API error %d: %s", response.status_code, error_text
                )
                raise ChatProviderError(
                    provider=self.provider_name,
                    status_code=response.status_code,
                    message=error_text,
                )

            data = response.json().get("data", [])
            if not data:
                raise ChatProviderError(
                    provider=self.provider_name,
                    status_code=502,
                    message="Embedding response contained no data",
                )

            vector = [float(v) for v in data[0]["embedding"]]
            logger.debug("Generated embedding (model=%s, dims=%d)", self._model, len(vector))
            return l2_normalize(vector)

        finally:
            if should_close:
                await client.aclose()

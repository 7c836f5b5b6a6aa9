"""On-device language model served by a local Ollama runtime.

The capability check requires hardware acceleration (CUDA or Apple MPS, as
reported by torch) and a reachable Ollama server. Replies are streamed from
``/api/chat`` and the accumulated text is reported as it grows.
"""

import json
import logging
from collections.abc import Callable

import httpx

from notes_assistant.application.interfaces.local_llm import LocalLLM, ProgressTextCallback
from notes_assistant.domain.exceptions import ChatProviderError

logger = logging.getLogger(__name__)


def detect_accelerator() -> bool:
    """Whether torch sees a CUDA device or Apple's Metal backend."""
    import torch

    if torch.cuda.is_available():
        return True
    mps = getattr(torch.backends, "mps", None)
    return bool(mps is not None and mps.is_available())


class OllamaLocalLLM(LocalLLM):
    """Infrastructure adapter — chat completions from a local Ollama server."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:11434",
        model: str = "llama3.2:1b",
        *,
        require_acceleration: bool = True,
        accelerator_probe: Callable[[], bool] = detect_accelerator,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._require_acceleration = require_acceleration
        self._probe = accelerator_probe
        self._http_client = http_client
        self._has_accelerator: bool | None = None

    @property
    def provider_name(self) -> str:
        return "ollama"

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=httpx.Timeout(120.0, connect=2.0))

    def _accelerated(self) -> bool:
        if self._has_accelerator is None:
            try:
                self._has_accelerator = bool(self._probe())
            except Exception as e:
                logger.warning("Accelerator probe failed: %s", e)
                self._has_accelerator = False
            logger.info("Local LLM hardware acceleration available: %s", self._has_accelerator)
        return self._has_accelerator

    async def is_available(self) -> bool:
        if self._require_acceleration and not self._accelerated():
            return False

        client = await self._get_client()
        should_close = self._http_client is None
        try:
            response = await client.get(f"{self._base_url}/api/version")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.debug("Ollama not reachable at %s: %s", self._base_url, e)
            return False
        finally:
            if should_close:
                await client.aclose()

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        on_progress_text: ProgressTextCallback | None = None,
        temperature: float = 0.2,
    ) -> str:
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "stream": True,
            "options": {"temperature": temperature},
        }

        client = await self._get_client()
        should_close = self._http_client is None
        text = ""

        try:
            async with client.stream(
                "POST", f"{self._base_url}/api/chat", json=payload
            ) as response:
                if response.status_code != 200:
                    body = await response.aread()
                    raise ChatProviderError(
                        provider=self.provider_name,
                        status_code=response.status_code,
                        message=body.decode(errors="replace")[:500],
                    )

                # NDJSON: one JSON object per line
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    data = json.loads(line)
                    if data.get("error"):
                        raise ChatProviderError(
                            provider=self.provider_name,
                            status_code=500,
                            message=str(data["error"]),
                        )
                    piece = data.get("message", {}).get("content", "")
                    if piece:
                        text += piece
                        if on_progress_text:
                            on_progress_text(text)
                    if data.get("done"):
                        break
        except httpx.HTTPError as e:
            raise ChatProviderError(
                provider=self.provider_name, status_code=503, message=str(e)
            ) from e
        finally:
            if should_close:
                await client.aclose()

        logger.info("Local LLM reply: %d chars (model=%s)", len(text), self._model)
        return text.strip()

"""OpenRouter API client — implements the ChatProvider interface.

Communicates with the OpenRouter API (https://openrouter.ai/api/v1) using
httpx. Rate limiting (HTTP 429) is retried with exponential backoff up to a
fixed number of attempts; every other non-200 response fails immediately.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

from notes_assistant.application.interfaces.chat_provider import ChatProvider
from notes_assistant.domain.entities import (
    ChatMessage,
    ChatCompletionResult,
    TokenUsage,
)
from notes_assistant.domain.exceptions import ChatProviderError

logger = logging.getLogger(__name__)

_RATE_LIMITED = 429
_MAX_RETRY_AFTER_SECONDS = 60.0


class OpenRouterClient(ChatProvider):
    """Infrastructure adapter — connects to the OpenRouter API.

    An injected ``http_client`` is reused and never closed here; otherwise a
    short-lived client is created per call.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://openrouter.ai/api/v1",
        app_name: str = "Notes Assistant",
        http_client: httpx.AsyncClient | None = None,
        *,
        max_attempts: int = 3,
        retry_base_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._app_name = app_name
        self._http_client = http_client
        self._max_attempts = max(1, max_attempts)
        self._retry_base_delay = retry_base_delay
        self._sleep = sleep

    @property
    def provider_name(self) -> str:
        return "openrouter"

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key and self._api_key.strip())

    def _get_headers(self) -> dict[str, str]:
        """Standard headers for OpenRouter requests."""
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "X-Title": self._app_name,
        }

    def _build_payload(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> dict:
        """Build the request payload for the OpenRouter API."""
        payload: dict = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        return payload

    async def _get_client(self) -> httpx.AsyncClient:
        """Return the injected client or create a new one."""
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=120.0)

    async def complete(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatCompletionResult:
        """Send a non-streaming chat completion to OpenRouter."""
        if not self.is_configured:
            raise ChatProviderError(
                provider=self.provider_name,
                status_code=401,
                message="OpenRouter API key is not configured",
            )

        payload = self._build_payload(
            messages, model, temperature=temperature, max_tokens=max_tokens
        )
        url = f"{self._base_url}/chat/completions"

        client = await self._get_client()
        should_close = self._http_client is None

        try:
            attempt = 0
            while True:
                response = await client.post(
                    url, headers=self._get_headers(), json=payload
                )
                attempt += 1

                if response.status_code == _RATE_LIMITED and attempt < self._max_attempts:
                    delay = self._retry_delay(response, attempt - 1)
                    logger.warning(
                        "OpenRouter rate limited (attempt %d/%d) — retrying in %.1fs",
                        attempt,
                        self._max_attempts,
                        delay,
                    )
                    await self._sleep(delay)
                    continue

                if response.status_code != 200:
                    self._raise_provider_error(response)

                return self._parse_completion_response(response.json())

        finally:
            if should_close:
                await client.aclose()

    def _retry_delay(self, response: httpx.Response, attempt: int) -> float:
        """Honour ``Retry-After`` (seconds) when present, else exponential backoff."""
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return min(max(0.0, float(retry_after)), _MAX_RETRY_AFTER_SECONDS)
            except ValueError:
                pass
        return self._retry_base_delay * (2 ** attempt)

    def _parse_completion_response(self, data: dict) -> ChatCompletionResult:
        """Parse the OpenRouter JSON response into a domain entity."""
        # Check for error in response body
        if "error" in data:
            error = data["error"]
            raise ChatProviderError(
                provider=self.provider_name,
                status_code=error.get("code", 500),
                message=error.get("message", "Unknown error"),
            )

        choices = data.get("choices", [])
        if not choices:
            raise ChatProviderError(
                provider=self.provider_name,
                status_code=500,
                message="No choices in response",
            )

        choice = choices[0]
        message = choice.get("message", {})
        usage_data = data.get("usage", {})
        content = (message.get("content") or "").strip()
        if not content:
            raise ChatProviderError(
                provider=self.provider_name,
                status_code=502,
                message="Empty response from model",
            )

        return ChatCompletionResult(
            model=data.get("model", ""),
            content=content,
            finish_reason=choice.get("finish_reason", "stop") or "stop",
            usage=TokenUsage(
                prompt_tokens=usage_data.get("prompt_tokens", 0),
                completion_tokens=usage_data.get("completion_tokens", 0),
                total_tokens=usage_data.get("total_tokens", 0),
                cost=usage_data.get("cost"),
            ),
            provider=self.provider_name,
        )

    def _raise_provider_error(self, response: httpx.Response) -> None:
        """Raise ChatProviderError from a non-200 httpx Response."""
        try:
            data = response.json()
            error = data.get("error", {})
            message = error.get("message", response.text)
        except Exception:
            message = response.text

        raise ChatProviderError(
            provider=self.provider_name,
            status_code=response.status_code,
            message=message,
        )

"""Unit tests for the OpenRouterClient."""

import json

import httpx
import pytest

from notes_assistant.infrastructure.openrouter.openrouter_client import OpenRouterClient
from notes_assistant.domain.entities import ChatMessage
from notes_assistant.domain.exceptions import ChatProviderError


# ── Helpers ──


def _mock_openrouter_response(
    content: str = "Hello!",
    model: str = "openai/gpt-4o-mini",
    prompt_tokens: int = 10,
    completion_tokens: int = 5,
    total_tokens: int = 15,
    cost: float | None = 0.00014,
) -> dict:
    """Build a mock OpenRouter JSON response."""
    return {
        "id": "chatcmpl-test123",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "model": model,
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": total_tokens,
            **({
                "cost": cost,
            } if cost is not None else {}),
        },
    }


def _make_mock_transport(
    response_data: dict | None = None,
    status_code: int = 200,
    error_data: dict | None = None,
) -> httpx.MockTransport:
    """Create a mock transport that returns a fixed response."""

    def handler(request: httpx.Request) -> httpx.Response:
        if error_data:
            return httpx.Response(status_code, json=error_data)
        return httpx.Response(status_code, json=response_data or {})

    return httpx.MockTransport(handler)


def _make_sequence_transport(responses: list[httpx.Response], seen: list[httpx.Request]):
    """Create a mock transport that replays ``responses`` in order."""
    pending = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return pending.pop(0)

    return httpx.MockTransport(handler)


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _client(transport: httpx.MockTransport, **kwargs) -> OpenRouterClient:
    return OpenRouterClient(
        api_key="test-key",
        http_client=httpx.AsyncClient(transport=transport),
        **kwargs,
    )


_RATE_LIMITED = {"error": {"code": 429, "message": "Rate limit exceeded"}}


# ── Tests ──


@pytest.mark.asyncio
async def test_complete_parses_response():
    """Non-streaming call correctly parses OpenRouter JSON response."""
    response_data = _mock_openrouter_response(content="The answer is 42.")
    client = _client(_make_mock_transport(response_data))

    result = await client.complete(
        messages=[ChatMessage(role="user", content="What is 42?")],
        model="openai/gpt-4o-mini",
    )

    assert result.content == "The answer is 42."
    assert result.model == "openai/gpt-4o-mini"
    assert result.usage.prompt_tokens == 10
    assert result.usage.completion_tokens == 5
    assert result.usage.total_tokens == 15
    assert result.usage.cost == 0.00014
    assert result.provider == "openrouter"


@pytest.mark.asyncio
async def test_complete_sends_payload_and_headers():
    seen: list[httpx.Request] = []
    transport = _make_sequence_transport(
        [httpx.Response(200, json=_mock_openrouter_response())], seen
    )
    client = _client(transport, app_name="Test App")

    await client.complete(
        messages=[
            ChatMessage(role="system", content="Be brief."),
            ChatMessage(role="user", content="Hi"),
        ],
        model="deepseek/deepseek-r1:free",
        temperature=0.2,
        max_tokens=1200,
    )

    request = seen[0]
    body = json.loads(request.content)
    assert request.url.path.endswith("/chat/completions")
    assert request.headers["Authorization"] == "Bearer test-key"
    assert request.headers["X-Title"] == "Test App"
    assert body["model"] == "deepseek/deepseek-r1:free"
    assert body["messages"][0] == {"role": "system", "content": "Be brief."}
    assert body["temperature"] == 0.2
    assert body["max_tokens"] == 1200


@pytest.mark.asyncio
async def test_complete_error_handling():
    """Non-retryable errors raise ChatProviderError immediately."""
    error_data = {"error": {"code": 500, "message": "Upstream exploded"}}
    sleep = RecordingSleep()
    client = _client(_make_mock_transport(error_data=error_data, status_code=500), sleep=sleep)

    with pytest.raises(ChatProviderError) as exc_info:
        await client.complete(
            messages=[ChatMessage(role="user", content="Hi")],
            model="openai/gpt-4o-mini",
        )

    assert exc_info.value.status_code == 500
    assert "Upstream" in exc_info.value.message
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_rate_limit_is_retried_with_backoff():
    seen: list[httpx.Request] = []
    transport = _make_sequence_transport(
        [
            httpx.Response(429, json=_RATE_LIMITED),
            httpx.Response(429, json=_RATE_LIMITED),
            httpx.Response(200, json=_mock_openrouter_response(content="Finally.")),
        ],
        seen,
    )
    sleep = RecordingSleep()
    client = _client(transport, sleep=sleep, retry_base_delay=0.5)

    result = await client.complete(
        messages=[ChatMessage(role="user", content="Hi")], model="m"
    )

    assert result.content == "Finally."
    assert len(seen) == 3
    assert sleep.delays == [0.5, 1.0]


@pytest.mark.asyncio
async def test_rate_limit_honours_retry_after():
    seen: list[httpx.Request] = []
    transport = _make_sequence_transport(
        [
            httpx.Response(429, json=_RATE_LIMITED, headers={"Retry-After": "7"}),
            httpx.Response(200, json=_mock_openrouter_response()),
        ],
        seen,
    )
    sleep = RecordingSleep()

    await _client(transport, sleep=sleep).complete(
        messages=[ChatMessage(role="user", content="Hi")], model="m"
    )

    assert sleep.delays == [7.0]


@pytest.mark.asyncio
async def test_rate_limit_gives_up_after_max_attempts():
    seen: list[httpx.Request] = []
    transport = _make_sequence_transport(
        [httpx.Response(429, json=_RATE_LIMITED) for _ in range(3)], seen
    )
    sleep = RecordingSleep()

    with pytest.raises(ChatProviderError) as exc_info:
        await _client(transport, sleep=sleep, max_attempts=3).complete(
            messages=[ChatMessage(role="user", content="Hi")], model="m"
        )

    assert exc_info.value.status_code == 429
    assert "Rate limit" in exc_info.value.message
    assert len(seen) == 3
    assert len(sleep.delays) == 2


@pytest.mark.asyncio
async def test_empty_content_is_an_error():
    client = _client(_make_mock_transport(_mock_openrouter_response(content="  ")))

    with pytest.raises(ChatProviderError) as exc_info:
        await client.complete(messages=[ChatMessage(role="user", content="Hi")], model="m")

    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_missing_api_key_fails_without_request():
    seen: list[httpx.Request] = []
    client = OpenRouterClient(
        api_key="",
        http_client=httpx.AsyncClient(transport=_make_sequence_transport([], seen)),
    )

    assert client.is_configured is False
    with pytest.raises(ChatProviderError) as exc_info:
        await client.complete(messages=[ChatMessage(role="user", content="Hi")], model="m")

    assert exc_info.value.status_code == 401
    assert seen == []


@pytest.mark.asyncio
async def test_provider_name():
    """Provider name is correctly reported."""
    client = OpenRouterClient(api_key="test-key")
    assert client.provider_name == "openrouter"
    assert client.is_configured is True

"""
Tests for the chat-completion transport
"""
import json

import httpx
import pytest

from pairmatch.core.exceptions import GenerationError, RateLimitedError
from pairmatch.core.llm_client import ChatCompletionClient, parse_json_content


def _client(settings, handler):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ChatCompletionClient(settings, http_client=http_client)


def _completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def test_parse_json_content_plain():
    assert parse_json_content('{"title": "X"}') == {"title": "X"}


def test_parse_json_content_strips_code_fence():
    assert parse_json_content('```json\n{"title": "X"}\n```') == {"title": "X"}


@pytest.mark.parametrize("content", ["", "   ", "not json", "[1, 2]"])
def test_parse_json_content_rejects_bad_content(content):
    with pytest.raises(GenerationError):
        parse_json_content(content)


@pytest.mark.asyncio
async def test_complete_json_sends_json_object_request(test_settings):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["auth"] = request.headers["authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=_completion('{"title": "SnapShare"}'))

    result = await _client(test_settings, handler).complete_json("PROMPT")

    assert result == {"title": "SnapShare"}
    assert captured["auth"] == "Bearer gsk_test_key"
    assert captured["body"]["model"] == test_settings.groq_model
    assert captured["body"]["response_format"] == {"type": "json_object"}
    assert captured["body"]["messages"] == [{"role": "system", "content": "PROMPT"}]


@pytest.mark.asyncio
async def test_rate_limit_raises_rate_limited(test_settings):
    def handler(request):
        return httpx.Response(429, headers={"Retry-After": "2"})

    with pytest.raises(RateLimitedError) as exc_info:
        await _client(test_settings, handler).complete_json("p")
    assert exc_info.value.retry_after == 2.0


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 403, 500, 503])
async def test_http_errors_raise_generation_error(test_settings, status):
    def handler(request):
        return httpx.Response(status, json={"error": "nope"})

    with pytest.raises(GenerationError) as exc_info:
        await _client(test_settings, handler).complete_json("p")
    assert not isinstance(exc_info.value, RateLimitedError)
    assert exc_info.value.status_code == status


@pytest.mark.asyncio
async def test_timeout_raises_generation_error(test_settings):
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    with pytest.raises(GenerationError, match="timed out"):
        await _client(test_settings, handler).complete_json("p")


@pytest.mark.asyncio
async def test_no_choices_raises(test_settings):
    def handler(request):
        return httpx.Response(200, json={"choices": []})

    with pytest.raises(GenerationError):
        await _client(test_settings, handler).complete_json("p")


@pytest.mark.asyncio
async def test_missing_api_key_raises_without_request(test_settings):
    settings = test_settings.model_copy(update={"groq_api_key": None})

    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(GenerationError, match="not configured"):
        await _client(settings, handler).complete_json("p")

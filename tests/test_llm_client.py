"""Tests for the Gemini client."""

import json

import httpx
import pytest

from backend.app.errors import ConfigError, UpstreamError
from backend.app.services.llm_client import GeminiClient, _extract_text
from tests.conftest import gemini_payload


def _client(handler, api_key: str | None = "key-123") -> GeminiClient:
    return GeminiClient(
        api_key,
        model="gemini-1.5-flash",
        base_url="https://gemini.test/v1beta/",
        transport=httpx.MockTransport(handler),
    )


def test_extract_text():
    assert _extract_text(gemini_payload("hi")) == "hi"


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"candidates": []},
        {"candidates": [{"content": {}}]},
        {"candidates": [{"content": {"parts": []}}]},
        {"candidates": [{"content": {"parts": [{"text": ""}]}}]},
    ],
)
def test_extract_text_missing(payload):
    assert _extract_text(payload) is None


async def test_generate_request_shape():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=gemini_payload("answer"))

    response = await _client(handler).generate("prompt", temperature=0.2, max_output_tokens=100)

    assert response.text == "answer"
    assert response.model == "gemini-1.5-flash"
    request = seen[0]
    assert str(request.url) == "https://gemini.test/v1beta/models/gemini-1.5-flash:generateContent"
    assert request.headers["x-goog-api-key"] == "key-123"
    body = json.loads(request.content)
    assert body["contents"][0]["parts"][0]["text"] == "prompt"
    assert body["generationConfig"] == {"temperature": 0.2, "maxOutputTokens": 100}


async def test_generate_without_key():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(ConfigError):
        await _client(handler, api_key=None).generate("prompt")


async def test_generate_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, text="API key not valid")

    with pytest.raises(UpstreamError) as exc_info:
        await _client(handler).generate("prompt")
    assert exc_info.value.message == "AI API error: API key not valid"


async def test_generate_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(UpstreamError, match="AI API request failed"):
        await _client(handler).generate("prompt")


async def test_generate_non_json_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    with pytest.raises(UpstreamError, match="non-JSON"):
        await _client(handler).generate("prompt")


@pytest.mark.parametrize(
    "payload",
    [
        [],
        ["candidates"],
        {"candidates": "oops"},
        {"candidates": [{"content": "oops"}]},
        {"candidates": [{"content": {"parts": [{"text": 42}]}}]},
    ],
)
def test_extract_text_malformed(payload):
    with pytest.raises(UpstreamError, match="malformed"):
        _extract_text(payload)


async def test_generate_list_body_is_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[gemini_payload("answer")])

    with pytest.raises(UpstreamError, match="malformed"):
        await _client(handler).generate("prompt")


async def test_generate_no_candidates():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"candidates": []})

    response = await _client(handler).generate("prompt")
    assert response.text is None

"""Gemini text-generation client.

The pipeline only relies on "give prompt, get text, may fail": callers get an
``LLMResponse`` whose ``text`` may be ``None`` when the model produced no
candidate, and every transport or API failure surfaces as ``UpstreamError``.
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from backend.app.errors import ConfigError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7


@dataclass(slots=True)
class LLMResponse:
    text: str | None
    model: str


def _extract_text(payload: Any) -> str | None:
    """Pull ``candidates[0].content.parts[0].text`` out of a Gemini response.

    Missing pieces mean "no answer"; pieces of the wrong type raise ``UpstreamError``.
    """
    try:
        candidates = payload.get("candidates") or []
        if not candidates:
            return None
        parts = (candidates[0].get("content") or {}).get("parts") or []
        if not parts:
            return None
        text = parts[0].get("text")
    except (AttributeError, IndexError, KeyError, TypeError) as exc:
        raise UpstreamError("AI API returned a malformed response") from exc
    if text is not None and not isinstance(text, str):
        raise UpstreamError("AI API returned a malformed response")
    return text or None


class GeminiClient:
    def __init__(
        self,
        api_key: str | None,
        *,
        model: str,
        base_url: str,
        timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self.model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout_seconds, connect=10.0)
        self._transport = transport

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float = DEFAULT_TEMPERATURE,
        max_output_tokens: int = 2048,
    ) -> LLMResponse:
        if not self._api_key:
            raise ConfigError("Gemini API key not configured (set AGENTDECK_GEMINI_API_KEY)")

        url = f"{self._base_url}/models/{self.model}:generateContent"
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_output_tokens,
            },
        }
        headers = {"x-goog-api-key": self._api_key, "Content-Type": "application/json"}

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.post(url, json=body, headers=headers)
            except httpx.HTTPError as exc:
                logger.warning("[LLM] Request to %s failed: %s", self.model, exc)
                raise UpstreamError(f"AI API request failed: {exc}") from exc

        if not response.is_success:
            logger.warning("[LLM] %s answered HTTP %d", self.model, response.status_code)
            raise UpstreamError(f"AI API error: {response.text}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError("AI API returned a non-JSON response") from exc

        text = _extract_text(payload)
        logger.debug("[LLM] %s returned %d chars", self.model, len(text or ""))
        return LLMResponse(text=text, model=self.model)

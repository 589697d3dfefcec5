"""OpenRouter implementation of LLMProvider."""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator

import httpx

from toolchat.config import Settings
from toolchat.llm.base import LLMProvider
from toolchat.models import LLMResponse, LLMToolCall

_LOGGER = logging.getLogger(__name__)

_DONE = "[DONE]"


class OpenRouterProvider(LLMProvider):
    """LLM provider using OpenRouter's OpenAI-compatible chat endpoint."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._settings.openrouter_api_key}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        timeout = httpx.Timeout(self._settings.request_timeout_seconds)
        return httpx.AsyncClient(base_url=self._settings.openrouter_base_url, timeout=timeout)

    async def generate(
        self,
        messages: list[dict[str, str]],
        model: str,
        tools: list[dict[str, Any]] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        payload: dict[str, Any] = {"model": model, "messages": messages}
        if tools:
            payload["tools"] = tools
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        async with self._client() as client:
            response = await client.post("/chat/completions", headers=self._headers(), json=payload)
            response.raise_for_status()
            data = response.json()

        choice = data["choices"][0]["message"]
        finish_reason = data["choices"][0].get("finish_reason")
        content = choice.get("content") or ""
        _LOGGER.info(
            "LLM response: finish_reason=%r content=%r tool_calls=%r",
            finish_reason,
            content[:200] if content else "",
            choice.get("tool_calls"),
        )

        parsed_tool_calls: list[LLMToolCall] = []
        for tool_call in choice.get("tool_calls") or []:
            function_data = tool_call.get("function") or {}
            parsed_tool_calls.append(
                LLMToolCall(
                    name=function_data.get("name", ""),
                    arguments=function_data.get("arguments"),
                    call_id=tool_call.get("id"),
                )
            )

        return LLMResponse(content=content, tool_calls=parsed_tool_calls, raw=data)

    async def stream(self, messages: list[dict[str, str]], model: str) -> AsyncIterator[str]:
        payload = {"model": model, "messages": messages, "stream": True}
        async with self._client() as client:
            async with client.stream(
                "POST", "/chat/completions", headers=self._headers(), json=payload
            ) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    data = line[5:].strip()
                    if data == _DONE:
                        break
                    piece = parse_stream_payload(data)
                    if piece:
                        yield piece


def parse_stream_payload(data: str) -> str:
    """Text carried by one SSE ``data:`` payload.

    OpenAI-style chunks put it under ``choices[0].delta.content``; some
    gateways send a flat ``{"response": ...}``. Payloads that are not JSON are
    passed through verbatim.
    """

    if not data:
        return ""
    try:
        chunk = json.loads(data)
    except json.JSONDecodeError:
        return data
    if not isinstance(chunk, dict):
        return ""
    choices = chunk.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        delta = choices[0].get("delta") or {}
        content = delta.get("content") if isinstance(delta, dict) else None
        return content if isinstance(content, str) else ""
    response = chunk.get("response")
    return response if isinstance(response, str) else ""

"""Tests for the single-call tool planner."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from toolchat.models import LLMResponse, LLMToolCall, ToolDecision, ToolName
from toolchat.planner import PLANNER_SYSTEM_PROMPT, Planner, decode_arguments
from toolchat.tools.iss_tool import IssTool
from toolchat.tools.registry import ToolRegistry
from toolchat.tools.weather_tool import WeatherTool
from toolchat.tools.wiki_tool import WikiTool


def _registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(WeatherTool())
    registry.register(WikiTool())
    registry.register(IssTool())
    return registry


def _planner(*calls: LLMToolCall, error: Exception | None = None) -> tuple[Planner, MagicMock]:
    llm = MagicMock()
    if error is not None:
        llm.generate = AsyncMock(side_effect=error)
    else:
        llm.generate = AsyncMock(return_value=LLMResponse(content="", tool_calls=list(calls)))
    planner = Planner(
        llm=llm,
        registry=_registry(),
        temperature=0.2,
        max_tokens=200,
        request_timeout_seconds=5,
    )
    return planner, llm


@pytest.mark.asyncio
async def test_no_tool_call_means_no_tool():
    planner, _ = _planner()
    assert await planner.plan([], "asdkjasdk nonsense", "model-a") is None


@pytest.mark.asyncio
async def test_weather_call_with_json_string_arguments():
    planner, _ = _planner(LLMToolCall(name="get_weather", arguments='{"location": "Tokyo"}'))

    decision = await planner.plan([], "What's the weather in Tokyo?", "model-a")

    assert decision == ToolDecision(tool=ToolName.WEATHER, arguments={"location": "Tokyo"})


@pytest.mark.asyncio
async def test_weather_call_with_unparseable_arguments_runs_with_empty_args():
    planner, _ = _planner(LLMToolCall(name="get_weather", arguments="{not json"))

    decision = await planner.plan([], "weather?", "model-a")

    assert decision == ToolDecision(tool=ToolName.WEATHER, arguments={})


@pytest.mark.asyncio
async def test_wiki_call_with_structured_arguments():
    planner, _ = _planner(
        LLMToolCall(name="get_wiki", arguments={"query": "  Real Madrid ", "lang": " es "})
    )

    decision = await planner.plan([], "How many titles did Real Madrid win?", "model-a")

    assert decision == ToolDecision(tool=ToolName.WIKI, arguments={"query": "Real Madrid", "lang": "es"})


@pytest.mark.parametrize("arguments", [None, "", "{}", '{"query": "   "}', "[1, 2]", 7])
@pytest.mark.asyncio
async def test_wiki_call_without_query_is_discarded(arguments):
    planner, _ = _planner(LLMToolCall(name="get_wiki", arguments=arguments))

    assert await planner.plan([], "tell me something", "model-a") is None


@pytest.mark.asyncio
async def test_iss_arguments_are_replaced_with_empty_set():
    planner, _ = _planner(LLMToolCall(name="get_iss", arguments={"satellite": "hubble"}))

    decision = await planner.plan([], "Where is the ISS?", "model-a")

    assert decision == ToolDecision(tool=ToolName.ISS, arguments={})


@pytest.mark.asyncio
async def test_unknown_tool_means_no_tool():
    planner, _ = _planner(LLMToolCall(name="getStockPrice", arguments={"ticker": "AAPL"}))

    assert await planner.plan([], "AAPL price", "model-a") is None


@pytest.mark.asyncio
async def test_only_first_of_several_proposals_is_used():
    planner, _ = _planner(
        LLMToolCall(name="get_iss", arguments={}),
        LLMToolCall(name="get_wiki", arguments={"query": "ISS"}),
    )

    decision = await planner.plan([], "Where is the ISS and what is it?", "model-a")

    assert decision == ToolDecision(tool=ToolName.ISS, arguments={})


@pytest.mark.parametrize(
    "error",
    [httpx.ConnectError("down"), KeyError("choices"), ValueError("bad json")],
)
@pytest.mark.asyncio
async def test_provider_errors_degrade_to_no_tool(error):
    planner, _ = _planner(error=error)

    assert await planner.plan([], "What's the weather in Tokyo?", "model-a") is None


@pytest.mark.asyncio
async def test_request_carries_catalog_history_and_sampling():
    planner, llm = _planner()
    history = [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hello"},
    ]

    await planner.plan(history, "weather in Oslo", "model-b")

    llm.generate.assert_called_once()
    call = llm.generate.call_args
    messages = call.args[0]
    assert messages[0] == {"role": "system", "content": PLANNER_SYSTEM_PROMPT}
    assert messages[1:3] == history
    assert messages[-1] == {"role": "user", "content": "weather in Oslo"}
    assert call.kwargs["model"] == "model-b"
    assert call.kwargs["temperature"] == 0.2
    assert call.kwargs["max_tokens"] == 200
    names = [spec["function"]["name"] for spec in call.kwargs["tools"]]
    assert names == ["get_weather", "get_wiki", "get_iss"]
    assert "Real Madrid" in PLANNER_SYSTEM_PROMPT


def test_decode_arguments():
    assert decode_arguments({"a": 1}) == {"a": 1}
    assert decode_arguments('{"a": 1}') == {"a": 1}
    assert decode_arguments('"text"') == {}
    assert decode_arguments("oops") == {}
    assert decode_arguments(None) == {}

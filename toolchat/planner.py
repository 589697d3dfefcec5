"""Single-call tool planner.

One inference request per turn decides whether a tool should run. The
planner never raises: provider problems degrade to "no tool" so the turn can
fall through to plain conversation.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from toolchat.llm.base import LLMProvider
from toolchat.models import LLMToolCall, ToolDecision
from toolchat.tools.registry import ToolRegistry

LOGGER = logging.getLogger(__name__)

PLANNER_SYSTEM_PROMPT = (
    "You can call tools. Call at most one tool, and only when it clearly helps.\n"
    "- get_weather: weather, forecast, temperature, rain or what to wear in a place "
    "or at coordinates. Pass the city as `location`.\n"
    "- get_wiki: facts about a person, team, place, organisation, event or concept. "
    "Pass the subject as `query`, not the whole question. For example "
    "'how many titles did Real Madrid win' becomes query 'Real Madrid', and "
    "'who was Ada Lovelace' becomes query 'Ada Lovelace'.\n"
    "- get_iss: where the International Space Station is right now. "
    "It takes no arguments.\n"
    "Greetings, small talk, opinions, coding help and anything else: do not call any tool."
)


class Planner:
    """Asks the model for at most one tool call and validates its arguments."""

    def __init__(
        self,
        llm: LLMProvider,
        registry: ToolRegistry,
        temperature: float,
        max_tokens: int,
        request_timeout_seconds: float,
    ) -> None:
        self._llm = llm
        self._registry = registry
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._request_timeout_seconds = request_timeout_seconds

    async def plan(
        self,
        history: list[dict[str, str]],
        user_text: str,
        model: str,
    ) -> ToolDecision | None:
        """Return the tool to run for ``user_text``, or None for plain chat."""

        messages = [
            {"role": "system", "content": PLANNER_SYSTEM_PROMPT},
            *history,
            {"role": "user", "content": user_text},
        ]
        try:
            response = await asyncio.wait_for(
                self._llm.generate(
                    messages,
                    model=model,
                    tools=self._registry.list_tool_specs(),
                    temperature=self._temperature,
                    max_tokens=self._max_tokens,
                ),
                timeout=self._request_timeout_seconds,
            )
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Planner call failed, falling back to chat: %s", exc)
            return None

        if not response.tool_calls:
            return None
        if len(response.tool_calls) > 1:
            LOGGER.info(
                "Planner proposed %d tool calls; only %r will run",
                len(response.tool_calls),
                response.tool_calls[0].name,
            )
        return self._decide(response.tool_calls[0])

    def _decide(self, call: LLMToolCall) -> ToolDecision | None:
        tool = self._registry.get(call.name)
        if tool is None:
            LOGGER.info("Planner proposed unknown tool %r", call.name)
            return None

        arguments = tool.validate_arguments(decode_arguments(call.arguments))
        if arguments is None:
            LOGGER.info("Planner proposal for %s discarded: invalid arguments", tool.name.value)
            return None
        return ToolDecision(tool=tool.name, arguments=arguments)


def decode_arguments(raw: Any) -> dict[str, Any]:
    """Tool arguments as a mapping; anything unparseable becomes ``{}``."""

    if isinstance(raw, dict):
        return dict(raw)
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}

"""Core agent runtime: one state machine run per inbound chat message."""

from __future__ import annotations

import logging
import re
from typing import Any, Awaitable, Callable

from toolchat.llm.base import LLMProvider
from toolchat.models import ToolDecision
from toolchat.planner import Planner
from toolchat.session import SessionManager
from toolchat.synthesizer import summarize
from toolchat.tools.base import Tool
from toolchat.tools.registry import ToolRegistry
from toolchat.tools.results import ToolFailure, encode_tool_row

LOGGER = logging.getLogger(__name__)

Emit = Callable[[dict[str, Any]], Awaitable[None]]

CHAT_SYSTEM_PROMPT = "You are a helpful, concise chat agent. Keep replies short unless the user requests detail."
STREAM_ERROR_MARKER = "_(stream error)_"
NO_RESPONSE = "[no response]"

_TOOL_INVENTORY_RE = re.compile(
    r"\b(what|which)\s+tools?\b.*(have|can\s+you\s+use)|\btools\??$",
    re.IGNORECASE,
)


def delta_frame(text: str) -> dict[str, Any]:
    return {"type": "delta", "text": text}


def done_frame() -> dict[str, Any]:
    return {"type": "done"}


def tool_frame(tool: Tool, status: str, message: str | None = None, result: Any = None) -> dict[str, Any]:
    frame: dict[str, Any] = {"type": "tool", "tool": tool.name.value, "status": status}
    if message is not None:
        frame["message"] = message
    if result is not None:
        frame["result"] = result
    return frame


class AgentRuntime:
    """Session-isolated runtime sequencing planning, tools and streamed chat.

    Callers must hold ``sessions.lock(session_id)`` while a handler runs.
    """

    def __init__(
        self,
        sessions: SessionManager,
        llm: LLMProvider,
        planner: Planner,
        tool_registry: ToolRegistry,
        context_window_messages: int,
    ) -> None:
        self._sessions = sessions
        self._llm = llm
        self._planner = planner
        self._tool_registry = tool_registry
        self._context_window_messages = context_window_messages

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    def ready(self, session_id: str) -> dict[str, Any]:
        """Frame replaying the full persisted session to an attaching client."""

        return {"type": "ready", "state": self._sessions.state(session_id).as_dict()}

    async def handle_model(self, session_id: str, model: str) -> None:
        self._sessions.set_model(session_id, model)

    async def handle_reset(self, session_id: str, emit: Emit) -> None:
        self._sessions.reset(session_id)
        await emit({"type": "cleared"})

    async def handle_chat(self, session_id: str, text: str, emit: Emit) -> None:
        """Handle one inbound user message through to a terminal outcome."""

        user_text = (text or "").strip()
        if not user_text:
            return

        self._sessions.append(session_id, "user", user_text)
        history = self._build_context(session_id)
        model = self._sessions.model(session_id)

        if _TOOL_INVENTORY_RE.search(user_text):
            await self._say(session_id, self._tool_inventory(), emit)
            return

        decision = await self._planner.plan(history, user_text, model)
        if decision is not None:
            LOGGER.info("Session %s running tool %s", session_id, decision.tool.value)
            await self._run_tool(session_id, decision, emit)
            return

        await self._stream_chat(session_id, history, user_text, model, emit)

    def _build_context(self, session_id: str) -> list[dict[str, str]]:
        # The newest row is the user message just appended; it is sent separately.
        recent = self._sessions.recent(session_id, self._context_window_messages + 1)[:-1]
        return [
            {"role": m.role, "content": m.content}
            for m in recent
            if m.role in ("user", "assistant")
        ]

    def _tool_inventory(self) -> str:
        tools = self._tool_registry.tools()
        lines = "\n".join(f"• **{t.name.value}**: {t.description}" for t in tools)
        return f"I can use {len(tools)} tools:\n\n{lines}"

    async def _run_tool(self, session_id: str, decision: ToolDecision, emit: Emit) -> None:
        tool = self._tool_registry.get(decision.tool)
        if tool is None:
            raise KeyError(f"Unknown tool: {decision.tool}")

        await self._say(session_id, tool.ack_message, emit)
        await emit(tool_frame(tool, "started", "Planning…"))
        await emit(tool_frame(tool, "step", tool.step_message))

        result = await self._tool_registry.execute(decision.tool, decision.arguments)

        if isinstance(result, ToolFailure):
            LOGGER.info("Tool %s failed for session %s: %s", tool.name.value, session_id, result.error)
            await emit(tool_frame(tool, "error", result.error))
            await self._say(session_id, tool.failure_message, emit)
            return

        await emit(tool_frame(tool, "done", "Result ready", result.model_dump(mode="json")))
        self._sessions.append(session_id, "tool", encode_tool_row(decision.tool, result))
        await self._say(session_id, summarize(decision.tool, result), emit)

    async def _stream_chat(
        self,
        session_id: str,
        history: list[dict[str, str]],
        user_text: str,
        model: str,
        emit: Emit,
    ) -> None:
        messages = [
            {"role": "system", "content": CHAT_SYSTEM_PROMPT},
            *history,
            {"role": "user", "content": user_text},
        ]
        full = ""
        try:
            async for piece in self._llm.stream(messages, model=model):
                full += piece
                await emit(delta_frame(piece))
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Stream failed for session %s after %d chars: %s", session_id, len(full), exc)
            marker = f" {STREAM_ERROR_MARKER}" if full else STREAM_ERROR_MARKER
            full += marker
            await emit(delta_frame(marker))

        if not full:
            full = NO_RESPONSE
            await emit(delta_frame(full))
        await emit(done_frame())
        self._sessions.append(session_id, "assistant", full)

    async def _say(self, session_id: str, text: str, emit: Emit) -> None:
        """Emit a complete assistant message and persist it."""

        await emit(delta_frame(text))
        await emit(done_frame())
        self._sessions.append(session_id, "assistant", text)

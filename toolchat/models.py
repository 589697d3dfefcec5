"""Core domain models used across layers."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

ROLES = ("user", "assistant", "tool")


def now_ms() -> int:
    """Milliseconds since the epoch."""

    return int(time.time() * 1000)


class ToolName(str, Enum):
    """Closed set of tools the planner may select."""

    WEATHER = "get_weather"
    WIKI = "get_wiki"
    ISS = "get_iss"

    @classmethod
    def resolve(cls, name: str | None) -> ToolName | None:
        try:
            return cls(name)
        except ValueError:
            return None


@dataclass(slots=True, frozen=True)
class ChatMessage:
    """One persisted conversation row."""

    role: str
    content: str
    ts: int

    def as_dict(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content, "ts": self.ts}


@dataclass(slots=True)
class SessionState:
    """Snapshot of a session replayed to attaching clients."""

    session_id: str
    model: str
    created_at: int
    expires_at: int
    messages: list[ChatMessage] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [m.as_dict() for m in self.messages],
            "createdAt": self.created_at,
            "expiresAt": self.expires_at,
        }


@dataclass(slots=True)
class ToolDecision:
    """Planner output: run ``tool`` with already-validated ``arguments``."""

    tool: ToolName
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class LLMToolCall:
    """Tool invocation returned by an LLM provider.

    ``arguments`` is the raw payload: providers send either a JSON string or
    an already-decoded mapping.
    """

    name: str
    arguments: Any
    call_id: str | None = None


@dataclass(slots=True)
class LLMResponse:
    """Result from an LLM generation request."""

    content: str
    tool_calls: list[LLMToolCall] = field(default_factory=list)
    raw: dict[str, Any] | None = None

"""LLM provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

from toolchat.models import LLMResponse


class LLMProvider(ABC):
    """Abstract model provider used by the planner and the agent runtime."""

    @abstractmethod
    async def generate(
        self,
        messages: list[dict[str, str]],
        model: str,
        tools: list[dict[str, Any]] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a model response, possibly proposing tool calls."""

    @abstractmethod
    def stream(self, messages: list[dict[str, str]], model: str) -> AsyncIterator[str]:
        """Yield completion text fragments in the order the model produces them."""

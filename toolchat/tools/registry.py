"""Registry mapping the closed set of tool names to their implementations."""

from __future__ import annotations

import logging
import time
from typing import Any

from toolchat.models import ToolName
from toolchat.tools.base import Tool
from toolchat.tools.results import ToolFailure, ToolResult

LOGGER = logging.getLogger(__name__)


class ToolRegistry:
    """Explicit registry of the tools the planner may choose from."""

    def __init__(self) -> None:
        self._tools: dict[ToolName, Tool] = {}

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def get(self, name: str | ToolName | None) -> Tool | None:
        resolved = name if isinstance(name, ToolName) else ToolName.resolve(name)
        if resolved is None:
            return None
        return self._tools.get(resolved)

    def tools(self) -> list[Tool]:
        return list(self._tools.values())

    def list_tool_specs(self) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name.value,
                    "description": tool.description,
                    "parameters": tool.parameters_schema,
                },
            }
            for tool in self._tools.values()
        ]

    async def execute(self, name: ToolName, arguments: dict[str, Any]) -> ToolResult:
        tool = self._tools.get(name)
        if tool is None:
            raise KeyError(f"Unknown tool: {name}")

        started = time.monotonic()
        try:
            result = await tool.run(**arguments)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Tool %s raised; converting to failure", name.value)
            result = ToolFailure(error="Tool failed.")
        LOGGER.info(
            "Tool %s finished ok=%s in %.2fs",
            name.value,
            result.ok,
            time.monotonic() - started,
        )
        return result

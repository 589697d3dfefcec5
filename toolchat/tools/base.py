"""Tool contracts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from toolchat.models import ToolName
from toolchat.tools.results import ToolResult


class Tool(ABC):
    """Base class for all external-data tools.

    ``run`` must never raise: every outcome is a success model or a
    ``ToolFailure``.
    """

    name: ToolName
    description: str
    parameters_schema: dict[str, Any]
    ack_message: str
    step_message: str
    failure_message: str

    def validate_arguments(self, arguments: dict[str, Any]) -> dict[str, Any] | None:
        """Check planner-decoded arguments. Returning None discards the proposal."""

        return arguments

    @abstractmethod
    async def run(self, **kwargs: Any) -> ToolResult:
        """Execute tool with validated arguments."""

"""Inbound frame parsing and dispatch.

Clients send JSON frames discriminated by ``type``: ``chat`` carries user
text, ``reset`` clears the session and ``model`` switches the active model.
Anything else is ignored.
"""

from __future__ import annotations

import logging
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from toolchat.agent_runtime import AgentRuntime, Emit

LOGGER = logging.getLogger(__name__)


class ChatFrame(BaseModel):
    type: Literal["chat"]
    text: str = ""


class ResetFrame(BaseModel):
    type: Literal["reset"]


class ModelFrame(BaseModel):
    type: Literal["model"]
    model: str = ""


InboundFrame = Annotated[Union[ChatFrame, ResetFrame, ModelFrame], Field(discriminator="type")]

_FRAME_ADAPTER: TypeAdapter[InboundFrame] = TypeAdapter(InboundFrame)


def parse_frame(raw: str | bytes) -> ChatFrame | ResetFrame | ModelFrame | None:
    """Decode one inbound frame.

    Returns:
        The typed frame, or None when the payload is not JSON, has no known
        ``type`` or is missing required fields.
    """
    try:
        return _FRAME_ADAPTER.validate_json(raw)
    except ValidationError as exc:
        LOGGER.debug("Ignoring malformed frame: %s", exc)
        return None


class FrameDispatcher:
    """Routes inbound frames to the runtime, one at a time per session."""

    def __init__(self, runtime: AgentRuntime) -> None:
        self._runtime = runtime

    async def dispatch(self, session_id: str, raw: str | bytes, emit: Emit) -> None:
        frame = parse_frame(raw)
        if frame is None:
            return

        LOGGER.info("Frame dispatch: session=%s type=%s", session_id, frame.type)
        async with self._runtime.sessions.lock(session_id):
            if isinstance(frame, ChatFrame):
                await self._runtime.handle_chat(session_id, frame.text, emit)
            elif isinstance(frame, ResetFrame):
                await self._runtime.handle_reset(session_id, emit)
            elif frame.model.strip():
                await self._runtime.handle_model(session_id, frame.model.strip())

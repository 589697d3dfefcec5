"""FastAPI websocket transport."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from toolchat.agent_runtime import AgentRuntime
from toolchat.commands import FrameDispatcher

LOGGER = logging.getLogger(__name__)

__version__ = "0.1.0"


def create_app(runtime: AgentRuntime) -> FastAPI:
    """Build the app around an already-wired runtime."""

    app = FastAPI(
        title="toolchat",
        description="Chat agent with weather, Wikipedia and ISS tools over a per-session websocket.",
        version=__version__,
    )
    dispatcher = FrameDispatcher(runtime)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, Any]:
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
        }

    @app.websocket("/agents/chat/{session_id}")
    async def chat_socket(websocket: WebSocket, session_id: str) -> None:
        await websocket.accept()
        LOGGER.info("Client attached to session %s", session_id)

        async def emit(frame: dict[str, Any]) -> None:
            # A turn keeps running (and persisting) after the client goes away.
            try:
                await websocket.send_json(frame)
            except (WebSocketDisconnect, RuntimeError) as exc:
                LOGGER.debug("Dropping %s frame for session %s: %s", frame.get("type"), session_id, exc)

        async with runtime.sessions.lock(session_id):
            await emit(runtime.ready(session_id))

        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    await dispatcher.dispatch(session_id, raw, emit)
                except Exception:  # noqa: BLE001
                    LOGGER.exception("Frame handling failed for session %s", session_id)
        except WebSocketDisconnect as exc:
            LOGGER.info("Client left session %s (code %s)", session_id, exc.code)

    return app

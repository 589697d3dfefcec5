"""Application entrypoint."""

from __future__ import annotations

import logging

import uvicorn

from toolchat.agent_runtime import AgentRuntime
from toolchat.config import Settings, load_settings
from toolchat.db import Database
from toolchat.llm.base import LLMProvider
from toolchat.llm.openrouter import OpenRouterProvider
from toolchat.models import now_ms
from toolchat.planner import Planner
from toolchat.server import create_app
from toolchat.session import SessionManager
from toolchat.tools.iss_tool import IssTool
from toolchat.tools.registry import ToolRegistry
from toolchat.tools.weather_tool import WeatherTool
from toolchat.tools.wiki_tool import WikiTool

LOGGER = logging.getLogger(__name__)


def build_registry(settings: Settings) -> ToolRegistry:
    tools = ToolRegistry()
    tools.register(WeatherTool(timeout_seconds=settings.tool_timeout_seconds))
    tools.register(WikiTool(timeout_seconds=settings.tool_timeout_seconds))
    tools.register(IssTool(timeout_seconds=settings.tool_timeout_seconds))
    return tools


def build_runtime(settings: Settings, db: Database, llm: LLMProvider | None = None) -> AgentRuntime:
    """Wire sessions, planner, tools and provider together."""

    provider = llm or OpenRouterProvider(settings)
    tools = build_registry(settings)
    planner = Planner(
        llm=provider,
        registry=tools,
        temperature=settings.planner_temperature,
        max_tokens=settings.planner_max_tokens,
        request_timeout_seconds=settings.request_timeout_seconds,
    )
    sessions = SessionManager(
        db=db,
        default_model=settings.default_model,
        ttl_hours=settings.session_ttl_hours,
    )
    return AgentRuntime(
        sessions=sessions,
        llm=provider,
        planner=planner,
        tool_registry=tools,
        context_window_messages=settings.context_window_messages,
    )


def main() -> None:
    """Load settings, prepare storage and serve the websocket app."""

    settings = load_settings()
    logging.basicConfig(level=settings.log_level.upper())
    logging.getLogger("httpx").setLevel(logging.WARNING)

    db = Database(settings.database_path)
    db.initialize()
    purged = db.purge_expired(now_ms())
    if purged:
        LOGGER.info("Purged %d expired sessions", purged)

    app = create_app(build_runtime(settings, db))
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()

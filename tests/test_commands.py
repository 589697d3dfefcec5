"""Tests for inbound frame parsing and dispatch."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from toolchat.commands import ChatFrame, FrameDispatcher, ModelFrame, ResetFrame, parse_frame


def _runtime() -> MagicMock:
    runtime = MagicMock()
    runtime.sessions.lock.return_value = asyncio.Lock()
    runtime.handle_chat = AsyncMock()
    runtime.handle_reset = AsyncMock()
    runtime.handle_model = AsyncMock()
    return runtime


class TestParseFrame:
    def test_chat(self):
        assert parse_frame('{"type": "chat", "text": "hi"}') == ChatFrame(type="chat", text="hi")

    def test_chat_without_text_defaults_to_empty(self):
        assert parse_frame('{"type": "chat"}') == ChatFrame(type="chat", text="")

    def test_reset(self):
        assert parse_frame('{"type": "reset"}') == ResetFrame(type="reset")

    def test_model(self):
        assert parse_frame(b'{"type": "model", "model": "x/y"}') == ModelFrame(type="model", model="x/y")

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[]",
            "{}",
            '{"type": "ping"}',
            '{"type": "chat", "text": 5}',
        ],
    )
    def test_malformed_frames_are_ignored(self, raw):
        assert parse_frame(raw) is None


class TestFrameDispatcher:
    @pytest.mark.asyncio
    async def test_chat_frame_runs_chat_handler(self):
        runtime = _runtime()
        emit = AsyncMock()

        await FrameDispatcher(runtime).dispatch("s1", '{"type": "chat", "text": "hello"}', emit)

        runtime.sessions.lock.assert_called_once_with("s1")
        runtime.handle_chat.assert_awaited_once_with("s1", "hello", emit)

    @pytest.mark.asyncio
    async def test_reset_frame(self):
        runtime = _runtime()
        emit = AsyncMock()

        await FrameDispatcher(runtime).dispatch("s1", '{"type": "reset"}', emit)

        runtime.handle_reset.assert_awaited_once_with("s1", emit)

    @pytest.mark.asyncio
    async def test_model_frame_is_trimmed(self):
        runtime = _runtime()

        await FrameDispatcher(runtime).dispatch("s1", '{"type": "model", "model": " x/y "}', AsyncMock())

        runtime.handle_model.assert_awaited_once_with("s1", "x/y")

    @pytest.mark.asyncio
    async def test_blank_model_is_ignored(self):
        runtime = _runtime()

        await FrameDispatcher(runtime).dispatch("s1", '{"type": "model", "model": "  "}', AsyncMock())

        runtime.handle_model.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_frame_touches_nothing(self):
        runtime = _runtime()

        await FrameDispatcher(runtime).dispatch("s1", '{"type": "ping"}', AsyncMock())

        runtime.sessions.lock.assert_not_called()
        runtime.handle_chat.assert_not_awaited()
        runtime.handle_reset.assert_not_awaited()

"""Tests for structured logging helpers."""

from __future__ import annotations

import pytest
import structlog

from actionlane.core.logging import LogContext, bind_context, clear_context, get_logger, unbind_context


def _bound() -> dict:
    return structlog.contextvars.get_contextvars()


class TestContext:
    def test_bind_and_unbind(self):
        bind_context(action_id="1", lane="main")
        assert _bound() == {"action_id": "1", "lane": "main"}
        unbind_context("lane")
        assert _bound() == {"action_id": "1"}
        clear_context()
        assert _bound() == {}

    def test_log_context_sync(self):
        with LogContext(action_id="7"):
            assert _bound()["action_id"] == "7"
        assert "action_id" not in _bound()

    @pytest.mark.asyncio
    async def test_log_context_async(self):
        async with LogContext(action_id="8", kind="shell"):
            assert _bound() == {"action_id": "8", "kind": "shell"}
        assert _bound() == {}


class TestGetLogger:
    def test_event_style_call(self):
        with structlog.testing.capture_logs() as logs:
            get_logger("actionlane.test").info("lane.action_started", action_id="1")
        assert logs == [{"event": "lane.action_started", "action_id": "1", "log_level": "info"}]

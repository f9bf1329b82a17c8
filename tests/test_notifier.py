"""Tests for list-changed notification delivery."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock

import pytest

from dynamic_tools.server.notifier import ChangeNotifier
from dynamic_tools.server.session.models import SessionState


@pytest.mark.asyncio
class TestChangeNotifier:
    async def test_without_emitter_nothing_is_sent(self) -> None:
        notifier = ChangeNotifier()
        notifier.notify_changed(SessionState())
        assert notifier.pending == 0
        await notifier.drain()
        assert notifier.sent == 0

    async def test_delivery(self) -> None:
        notifier = ChangeNotifier()
        emitter = AsyncMock()
        state = SessionState(emitter=emitter)
        notifier.notify_changed(state)
        await notifier.drain()
        emitter.assert_awaited_once()
        assert notifier.sent == 1
        assert notifier.pending == 0

    async def test_failure_is_logged_not_raised(self, caplog) -> None:
        notifier = ChangeNotifier()
        state = SessionState(emitter=AsyncMock(side_effect=ConnectionError("gone")))
        with caplog.at_level(logging.WARNING, logger="dynamic_tools.server.notifier"):
            notifier.notify_changed(state)
            await notifier.drain()
        assert notifier.failed == 1
        assert notifier.sent == 0
        assert "gone" in caplog.text

    async def test_attach_emitter_replaces_previous(self) -> None:
        first, second = AsyncMock(), AsyncMock()
        state = SessionState()
        state.attach_emitter(first)
        state.attach_emitter(second)
        notifier = ChangeNotifier()
        notifier.notify_changed(state)
        await notifier.drain()
        first.assert_not_awaited()
        second.assert_awaited_once()

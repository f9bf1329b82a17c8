"""Tests for the invocation dispatcher (via sessions from a SessionManager)."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from dynamic_tools.config.schema import DynamicToolsConfig
from dynamic_tools.errors import ToolNotFoundError
from dynamic_tools.policy import FollowupWindowPolicy, PolicyEngine, create_engine
from dynamic_tools.server.notifier import ChangeNotifier
from dynamic_tools.server.session import SessionManager


def _manager(validate_arguments: bool = True) -> SessionManager:
    config = DynamicToolsConfig()
    engine = create_engine(config.policies, config.registry.effective_protected_tools)
    return SessionManager(engine, ChangeNotifier(), validate_arguments=validate_arguments)


@pytest.mark.asyncio
class TestInvocationDispatcher:
    async def test_greet_counts_and_unlocks(self) -> None:
        sm = _manager()
        s = sm.create_session("test")
        result = await s.invoke("greet", {"name": "Alice"})
        assert not result.isError
        assert result.content[0].text == "Hello, Alice! This server has been called 1 times."
        assert s.call_count == 1
        assert s.registry.names() == ("greet", "calculate", "get_status", "followup")

    async def test_unknown_tool_changes_nothing(self) -> None:
        sm = _manager()
        s = sm.create_session("test")
        with pytest.raises(ToolNotFoundError) as exc_info:
            await s.invoke("calculate", {"expression": "1 + 1"})
        assert str(exc_info.value) == "Tool 'calculate' not found"
        assert s.call_count == 0
        assert s.registry.names() == ("greet",)

    async def test_validation_failure_still_counts_and_mutates(self) -> None:
        sm = _manager()
        s = sm.create_session("test")
        result = await s.invoke("greet", {})
        assert result.isError
        assert result.content[0].text.startswith("Error executing greet: Input validation error")
        assert s.call_count == 1
        assert len(s.registry) == 4

    async def test_handler_failure_is_reported_in_result(self) -> None:
        sm = _manager(validate_arguments=False)
        s = sm.create_session("test")
        result = await s.invoke("greet", {"name": 42})
        assert result.isError
        assert result.content[0].text == "Error executing greet: 'name' must be a string"
        assert s.call_count == 1

    async def test_status_sees_registry_before_mutation(self) -> None:
        sm = _manager()
        s = sm.create_session("test")
        await s.invoke("greet", {"name": "Bob"})
        result = await s.invoke("get_status", {})
        text = result.content[0].text
        assert "- Total calls: 2" in text
        assert "- Available tools: 4" in text
        assert "- Tools: greet, calculate, get_status, followup" in text

    async def test_calculate_after_unlock(self) -> None:
        sm = _manager()
        s = sm.create_session("test")
        await s.invoke("greet", {"name": "Bob"})
        result = await s.invoke("calculate", {"expression": "8 / 0"})
        assert not result.isError
        assert result.content[0].text == "Calculation: 8 / 0 = Cannot divide by zero"

    async def test_one_notification_per_changing_call(self) -> None:
        sm = _manager()
        s = sm.create_session("test")
        emitter = AsyncMock()
        s.attach_emitter(emitter)
        await s.invoke("greet", {"name": "A"})
        await s.invoke("greet", {"name": "B"})
        await sm.notifier.drain()
        assert emitter.await_count == 1
        assert sm.notifier.sent == 1

    async def test_failed_notification_keeps_result_and_mutation(self) -> None:
        sm = _manager()
        s = sm.create_session("test")
        s.attach_emitter(AsyncMock(side_effect=ConnectionError("client gone")))
        result = await s.invoke("greet", {"name": "A"})
        await sm.notifier.drain()
        assert not result.isError
        assert len(s.registry) == 4
        assert s.call_count == 1
        assert sm.notifier.failed == 1
        assert sm.notifier.sent == 0

    async def test_every_call_notifies_when_every_call_mutates(self) -> None:
        engine = PolicyEngine([FollowupWindowPolicy(keep=2)], protected_tools=["greet"])
        sm = SessionManager(engine, ChangeNotifier())
        s = sm.create_session("test")
        emitter = AsyncMock()
        s.attach_emitter(emitter)
        for n in range(4):
            await s.invoke("greet", {"name": str(n)})
        await sm.notifier.drain()
        assert emitter.await_count == 4
        assert set(s.registry.names()) == {"greet", "followup_3", "followup_4"}

    async def test_concurrent_calls_get_distinct_counters(self) -> None:
        sm = _manager()
        s = sm.create_session("test")
        results = await asyncio.gather(
            *(s.invoke("greet", {"name": f"u{i}"}) for i in range(10))
        )
        counts = sorted(
            int(r.content[0].text.split("called ")[1].split(" times")[0]) for r in results
        )
        assert counts == list(range(1, 11))
        assert s.call_count == 10

    async def test_sessions_are_isolated(self) -> None:
        sm = _manager()
        a = sm.create_session("test")
        b = sm.create_session("test")
        await a.invoke("greet", {"name": "A"})
        assert len(a.registry) == 4
        assert b.registry.names() == ("greet",)
        assert b.call_count == 0
        with pytest.raises(ToolNotFoundError):
            await b.invoke("get_status", {})

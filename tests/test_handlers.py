"""End-to-end tests: an MCP client talking to the server over in-memory streams."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Tuple

import anyio
import pytest
from mcp import types as mcp_types
from mcp.client.session import ClientSession
from mcp.shared.exceptions import McpError
from mcp.shared.memory import create_connected_server_and_client_session

from dynamic_tools.config.loader import validate_config
from dynamic_tools.config.schema import DynamicToolsConfig
from dynamic_tools.runtime import Runtime, build_runtime
from dynamic_tools.server.session import SessionState


@asynccontextmanager
async def connected(
    runtime: Runtime,
    notes: List[mcp_types.ToolListChangedNotification],
) -> AsyncIterator[Tuple[ClientSession, SessionState]]:
    """Bind a session and connect a client to the runtime's MCP server."""

    async def message_handler(message) -> None:
        if isinstance(message, mcp_types.ServerNotification) and isinstance(
            message.root, mcp_types.ToolListChangedNotification
        ):
            notes.append(message.root)

    async with runtime.session_manager.bind("memory") as state:
        async with create_connected_server_and_client_session(
            runtime.mcp_server, message_handler=message_handler
        ) as client:
            yield client, state
            await runtime.notifier.drain()


async def _wait_for(notes: list, count: int) -> None:
    with anyio.fail_after(2):
        while len(notes) < count:
            await anyio.sleep(0.01)


@pytest.mark.asyncio
class TestMcpHandlers:
    async def test_initial_list_has_only_seed(self) -> None:
        runtime = build_runtime(DynamicToolsConfig())
        async with connected(runtime, []) as (client, _state):
            result = await client.list_tools()
        assert [t.name for t in result.tools] == ["greet"]

    async def test_list_is_idempotent(self) -> None:
        runtime = build_runtime(DynamicToolsConfig())
        async with connected(runtime, []) as (client, state):
            first = await client.list_tools()
            second = await client.list_tools()
        assert first.tools == second.tools
        assert state.call_count == 0

    async def test_greet_unlocks_and_notifies(self) -> None:
        runtime = build_runtime(DynamicToolsConfig())
        notes: List[mcp_types.ToolListChangedNotification] = []
        async with connected(runtime, notes) as (client, state):
            result = await client.call_tool("greet", {"name": "Alice"})
            await runtime.notifier.drain()
            await _wait_for(notes, 1)
            listed = await client.list_tools()

        assert not result.isError
        text = result.content[0].text
        assert "Hello, Alice!" in text
        assert "called 1 times" in text
        assert [t.name for t in listed.tools] == ["greet", "calculate", "get_status", "followup"]
        assert len(notes) == 1
        assert state.call_count == 1

    async def test_unknown_tool_is_protocol_error(self) -> None:
        runtime = build_runtime(DynamicToolsConfig())
        async with connected(runtime, []) as (client, state):
            with pytest.raises(McpError) as exc_info:
                await client.call_tool("calculate", {"expression": "1 + 1"})
            listed = await client.list_tools()
        assert exc_info.value.error.code == mcp_types.METHOD_NOT_FOUND
        assert "calculate" in exc_info.value.error.message
        assert state.call_count == 0
        assert [t.name for t in listed.tools] == ["greet"]

    async def test_handler_failure_is_tool_error(self) -> None:
        runtime = build_runtime(DynamicToolsConfig())
        async with connected(runtime, []) as (client, state):
            result = await client.call_tool("greet", {})
        assert result.isError
        assert result.content[0].text.startswith("Error executing greet:")
        assert state.call_count == 1

    async def test_evolving_profile_end_to_end(self) -> None:
        config = validate_config(
            {
                "registry": {"seed_tools": ["greet", "calculate", "get_status"]},
                "policies": [
                    {"type": "followup_window", "keep": 3},
                    {"type": "milestone", "every": 5},
                    {"type": "history", "every": 3},
                ],
            }
        )
        runtime = build_runtime(config)
        async with connected(runtime, []) as (client, _state):
            for n in range(10):
                await client.call_tool("calculate", {"expression": f"{n} + 1"})
            listed = await client.list_tools()
            milestone = await client.call_tool("milestone_10", {"celebration": "cake"})
        names = {t.name for t in listed.tools}
        assert {"followup_8", "followup_9", "followup_10"} <= names
        assert "followup_7" not in names
        assert {"milestone_5", "milestone_10", "history_3", "history_6", "history_9"} <= names
        assert "Milestone 10 reached! Celebration: cake" in milestone.content[0].text

    async def test_two_clients_do_not_share_tools(self) -> None:
        runtime = build_runtime(DynamicToolsConfig())
        async with connected(runtime, []) as (client_a, state_a):
            await client_a.call_tool("greet", {"name": "A"})
        async with connected(runtime, []) as (client_b, state_b):
            listed = await client_b.list_tools()
        assert state_a.id != state_b.id
        assert [t.name for t in listed.tools] == ["greet"]


@pytest.mark.asyncio
class TestStreamableHttpRouting:
    async def _request(self, app, headers) -> Tuple[int, bytes]:
        sent: list = []

        async def receive():
            return {"type": "http.request", "body": b"", "more_body": False}

        async def send(message):
            sent.append(message)

        scope = {
            "type": "http",
            "method": "POST",
            "path": "/mcp",
            "headers": headers,
            "query_string": b"",
        }
        await app(scope, receive, send)
        start = next(m for m in sent if m["type"] == "http.response.start")
        body = b"".join(m.get("body", b"") for m in sent if m["type"] == "http.response.body")
        return start["status"], body

    async def test_unknown_session_id_gets_404(self) -> None:
        from dynamic_tools.server.transport import StreamableHttpSessions

        runtime = build_runtime(DynamicToolsConfig())
        http_sessions = StreamableHttpSessions(runtime.mcp_server, runtime.session_manager)
        async with http_sessions.run():
            status, body = await self._request(
                http_sessions, [(b"mcp-session-id", b"does-not-exist")]
            )
        assert status == 404
        assert body == b"Session not found"
        assert http_sessions.active_count == 0

    async def test_requires_running_task_group(self) -> None:
        from dynamic_tools.server.transport import StreamableHttpSessions

        runtime = build_runtime(DynamicToolsConfig())
        http_sessions = StreamableHttpSessions(runtime.mcp_server, runtime.session_manager)
        with pytest.raises(RuntimeError):
            await self._request(http_sessions, [])

    async def test_served_session_uses_transport_id(self) -> None:
        from mcp.server.streamable_http import StreamableHTTPServerTransport

        from dynamic_tools.server.transport import StreamableHttpSessions

        runtime = build_runtime(DynamicToolsConfig())
        http_sessions = StreamableHttpSessions(runtime.mcp_server, runtime.session_manager)
        async with http_sessions.run():
            transport = StreamableHTTPServerTransport(mcp_session_id="abc123")
            await http_sessions._task_group.start(http_sessions._serve, "abc123", transport)
            state = runtime.session_manager.get_session("abc123")
            assert state is not None
            assert state.transport_type == "streamable-http"
            assert state.registry.names() == ("greet",)
        assert runtime.session_manager.get_session("abc123") is None

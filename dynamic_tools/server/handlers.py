"""MCP handler functions - registered on the MCP server instance."""

import logging
from typing import List

from mcp import types as mcp_types
from mcp.server import Server as McpServer
from mcp.shared.exceptions import McpError

from dynamic_tools.errors import ToolNotFoundError
from dynamic_tools.server.session.context import current_session
from dynamic_tools.server.session.models import SessionState

logger = logging.getLogger(__name__)


def _session_for_request(mcp_server: McpServer, method: str) -> SessionState:
    """Resolve the caller's session and remember how to notify its client."""
    state = current_session(method)
    try:
        ctx = mcp_server.request_context
    except LookupError:
        logger.debug("No request context for '%s'; client emitter not attached.", method)
    else:
        state.attach_emitter(ctx.session.send_tool_list_changed)
    state.touch()
    return state


def register_handlers(mcp_server: McpServer) -> None:
    """Register the ``tools/list`` and ``tools/call`` handlers on *mcp_server*."""

    @mcp_server.list_tools()
    async def handle_list_tools() -> List[mcp_types.Tool]:
        logger.debug("Handling listTools request...")
        state = _session_for_request(mcp_server, "tools/list")
        tools = state.registry.list_tools()
        logger.info("Returning %s tools for session %s", len(tools), state.id)
        return tools

    # Registered directly rather than through ``@mcp_server.call_tool()``:
    # that decorator turns every exception into an ``isError`` result, and
    # an unknown tool must surface as a JSON-RPC METHOD_NOT_FOUND error.
    async def handle_call_tool(req: mcp_types.CallToolRequest) -> mcp_types.ServerResult:
        name = req.params.name
        arguments = req.params.arguments or {}
        logger.debug("Handling callTool: name='%s'", name)

        state = _session_for_request(mcp_server, "tools/call")
        try:
            result = await state.invoke(name, arguments)
        except ToolNotFoundError as exc:
            raise McpError(
                mcp_types.ErrorData(code=mcp_types.METHOD_NOT_FOUND, message=str(exc))
            ) from exc
        return mcp_types.ServerResult(result)

    mcp_server.request_handlers[mcp_types.CallToolRequest] = handle_call_tool

    logger.debug("All MCP protocol handlers registered on server instance.")

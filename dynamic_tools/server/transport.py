"""stdio, SSE and streamable HTTP transport handling for MCP connections.

Every transport runs ``Server.run`` inside :meth:`SessionManager.bind`, so
one connection (or one ``Mcp-Session-Id``) maps to exactly one session.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import AsyncIterator, Dict, Optional
from uuid import uuid4

import anyio
from anyio.abc import TaskGroup, TaskStatus
from mcp.server import Server as McpServer
from mcp.server.lowlevel import NotificationOptions
from mcp.server.models import InitializationOptions
from mcp.server.sse import SseServerTransport
from mcp.server.stdio import stdio_server
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER, StreamableHTTPServerTransport
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from dynamic_tools.server.session.manager import SessionManager

logger = logging.getLogger(__name__)


def initialization_options(mcp_server: McpServer) -> InitializationOptions:
    """Initialization options advertising ``tools.listChanged``."""
    return mcp_server.create_initialization_options(
        notification_options=NotificationOptions(tools_changed=True),
    )


# ── stdio ────────────────────────────────────────────────────────────────


async def run_stdio(mcp_server: McpServer, session_manager: SessionManager) -> None:
    """Serve a single session over stdin/stdout until the client disconnects."""
    async with stdio_server() as (read_stream, write_stream):
        async with session_manager.bind("stdio") as session:
            logger.info("stdio session %s started.", session.id)
            await mcp_server.run(read_stream, write_stream, initialization_options(mcp_server))
    logger.info("stdio transport closed.")


# ── SSE ──────────────────────────────────────────────────────────────────


class SseHandler:
    """``GET /sse`` endpoint: one session per open event stream."""

    def __init__(
        self,
        mcp_server: McpServer,
        session_manager: SessionManager,
        sse_transport: SseServerTransport,
    ) -> None:
        self._mcp_server = mcp_server
        self._session_manager = session_manager
        self._sse_transport = sse_transport

    async def handle(self, request: Request) -> Response:
        logger.debug("Received new SSE connection request (GET): %s", request.url)
        async with self._sse_transport.connect_sse(
            request.scope,
            request.receive,
            request._send,
        ) as (read_stream, write_stream):
            async with self._session_manager.bind("sse") as session:
                logger.debug("Running MCP main loop for SSE session %s.", session.id)
                await self._mcp_server.run(
                    read_stream,
                    write_stream,
                    initialization_options(self._mcp_server),
                )
        logger.debug("SSE connection closed: %s", request.url)
        return Response()


# ── Streamable HTTP ──────────────────────────────────────────────────────


class StreamableHttpSessions:
    """Stateful streamable HTTP: one transport and one session per session id.

    The first request without ``Mcp-Session-Id`` creates a transport whose
    MCP server loop runs in this object's task group; later requests with
    that id are routed to it.  Unknown ids get 404 so the client starts a
    new session.  :meth:`run` must be active (it is entered by the app
    lifespan) while requests are served.
    """

    def __init__(self, mcp_server: McpServer, session_manager: SessionManager) -> None:
        self._mcp_server = mcp_server
        self._session_manager = session_manager
        self._transports: Dict[str, StreamableHTTPServerTransport] = {}
        self._task_group: Optional[TaskGroup] = None
        self._creation_lock = asyncio.Lock()

    @property
    def active_count(self) -> int:
        return len(self._transports)

    @asynccontextmanager
    async def run(self) -> AsyncIterator[None]:
        async with anyio.create_task_group() as tg:
            self._task_group = tg
            logger.info("Streamable HTTP session manager started.")
            try:
                yield
            finally:
                tg.cancel_scope.cancel()
                self._task_group = None
                self._transports.clear()
                logger.info("Streamable HTTP session manager stopped.")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        # Instances are mounted as a raw ASGI endpoint.
        await self.handle_request(scope, receive, send)

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Route one streamable HTTP request to its session's transport."""
        if self._task_group is None:
            raise RuntimeError("StreamableHttpSessions.run() is not active.")

        request = Request(scope, receive)
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        logger.debug("Received streamable HTTP request (%s), session=%s", request.method, session_id)

        if session_id is not None:
            transport = self._transports.get(session_id)
            if transport is None:
                response = Response("Session not found", status_code=HTTPStatus.NOT_FOUND)
                await response(scope, receive, send)
                return
            await transport.handle_request(scope, receive, send)
            return

        async with self._creation_lock:
            new_id = uuid4().hex
            transport = StreamableHTTPServerTransport(mcp_session_id=new_id)
            self._transports[new_id] = transport
            await self._task_group.start(self._serve, new_id, transport)
        await transport.handle_request(scope, receive, send)

    async def _serve(
        self,
        session_id: str,
        transport: StreamableHTTPServerTransport,
        *,
        task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        try:
            async with transport.connect() as (read_stream, write_stream):
                async with self._session_manager.bind(
                    "streamable-http",
                    session_id=session_id,
                    ttl=self._session_manager.idle_ttl,
                    closer=transport.terminate,
                ):
                    task_status.started()
                    await self._mcp_server.run(
                        read_stream,
                        write_stream,
                        initialization_options(self._mcp_server),
                    )
        except Exception:
            logger.exception("Streamable HTTP session %s crashed.", session_id)
        finally:
            self._transports.pop(session_id, None)
            logger.debug("Streamable HTTP session %s finished.", session_id)

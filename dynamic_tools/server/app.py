"""Starlette ASGI application factory."""

import logging
from typing import Optional

from mcp.server.sse import SseServerTransport
from starlette.applications import Starlette
from starlette.routing import Mount, Route

from dynamic_tools.config.schema import DynamicToolsConfig
from dynamic_tools.constants import POST_MESSAGES_PATH, SERVER_NAME, SSE_PATH, STREAMABLE_HTTP_PATH
from dynamic_tools.runtime import Runtime, build_runtime
from dynamic_tools.server.lifespan import app_lifespan
from dynamic_tools.server.transport import SseHandler, StreamableHttpSessions

logger = logging.getLogger(__name__)


def create_app(config: DynamicToolsConfig, runtime: Optional[Runtime] = None) -> Starlette:
    """Create the Starlette ASGI application serving SSE and streamable HTTP."""
    runtime = runtime or build_runtime(config)
    sse_transport = SseServerTransport(POST_MESSAGES_PATH)
    sse_handler = SseHandler(runtime.mcp_server, runtime.session_manager, sse_transport)
    http_sessions = StreamableHttpSessions(runtime.mcp_server, runtime.session_manager)

    application = Starlette(
        lifespan=app_lifespan,
        routes=[
            Route(SSE_PATH, endpoint=sse_handler.handle, methods=["GET"]),
            Mount(POST_MESSAGES_PATH, app=sse_transport.handle_post_message),
            Route(
                STREAMABLE_HTTP_PATH,
                endpoint=http_sessions,
                methods=["GET", "POST", "DELETE"],
            ),
        ],
    )
    application.state.runtime = runtime
    application.state.http_sessions = http_sessions
    application.state.transport_type = config.server.transport
    logger.info(
        "Starlette ASGI app '%s' created. SSE GET on %s, POST on %s, Streamable HTTP on %s",
        SERVER_NAME,
        SSE_PATH,
        POST_MESSAGES_PATH,
        STREAMABLE_HTTP_PATH,
    )
    return application

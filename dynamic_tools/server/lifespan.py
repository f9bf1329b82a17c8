"""Application lifespan management - startup and shutdown sequences."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from starlette.applications import Starlette

from dynamic_tools.constants import SERVER_NAME, SERVER_VERSION
from dynamic_tools.display.console import disp_console_status, gen_status_info, log_file_status
from dynamic_tools.runtime import Runtime
from dynamic_tools.server.transport import StreamableHttpSessions

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: Starlette) -> AsyncIterator[None]:
    """Start session housekeeping and the streamable HTTP task group."""
    runtime: Runtime = app.state.runtime
    http_sessions: StreamableHttpSessions = app.state.http_sessions
    session_manager = runtime.session_manager

    logger.info("Lifespan startup for %s v%s.", SERVER_NAME, SERVER_VERSION)
    session_manager.start()
    try:
        async with http_sessions.run():
            status = gen_status_info(
                app.state,
                "Server ready",
                seed_tools=session_manager.seed_tools,
                policies=[p.describe() for p in runtime.engine.policies],
            )
            log_file_status(status)
            if getattr(app.state, "show_banner", False):
                disp_console_status("Initialization", status)
            yield
    finally:
        logger.info("Lifespan shutdown: stopping session manager.")
        await session_manager.stop()
        logger.info(
            "Notifications sent: %d, failed: %d.",
            runtime.notifier.sent,
            runtime.notifier.failed,
        )

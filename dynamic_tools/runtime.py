"""Assembles the server components from a validated configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from mcp.server import Server as McpServer

from dynamic_tools.config.schema import DynamicToolsConfig
from dynamic_tools.constants import SERVER_NAME, SERVER_VERSION
from dynamic_tools.policy.engine import PolicyEngine, create_engine
from dynamic_tools.server.handlers import register_handlers
from dynamic_tools.server.notifier import ChangeNotifier
from dynamic_tools.server.session.manager import SessionManager

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """The wired-up core shared by every transport."""

    config: DynamicToolsConfig
    engine: PolicyEngine
    notifier: ChangeNotifier
    session_manager: SessionManager
    mcp_server: McpServer


def create_mcp_server() -> McpServer:
    """Create an MCP server instance with the tool handlers registered."""
    mcp_server: McpServer = McpServer(SERVER_NAME, version=SERVER_VERSION)
    register_handlers(mcp_server)
    logger.debug("MCP server instance '%s' created.", mcp_server.name)
    return mcp_server


def build_runtime(config: DynamicToolsConfig) -> Runtime:
    """Build engine, notifier, session manager and MCP server for *config*."""
    engine = create_engine(config.policies, config.registry.effective_protected_tools)
    notifier = ChangeNotifier()
    session_manager = SessionManager(
        engine,
        notifier,
        seed_tools=config.registry.seed_tools,
        idle_ttl=config.sessions.idle_ttl,
        cleanup_interval=config.sessions.cleanup_interval,
        validate_arguments=config.registry.validate_arguments,
    )
    return Runtime(
        config=config,
        engine=engine,
        notifier=notifier,
        session_manager=session_manager,
        mcp_server=create_mcp_server(),
    )

"""Session management for per-client MCP sessions."""

from dynamic_tools.server.session.context import current_session, use_session
from dynamic_tools.server.session.manager import SessionManager
from dynamic_tools.server.session.models import SessionState

__all__ = ["SessionManager", "SessionState", "current_session", "use_session"]

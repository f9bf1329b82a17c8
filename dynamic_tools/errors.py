"""Custom exception classes for Dynamic Tools."""

from typing import Optional


class DynamicToolsError(Exception):
    """Base class for all custom exceptions in Dynamic Tools."""

    pass


class ConfigurationError(DynamicToolsError):
    """Raised when loading or validating the configuration file fails."""

    pass


class ToolNotFoundError(DynamicToolsError):
    """
    Raised when a call names a tool that is not in the session's registry.

    This is the only dispatch failure that surfaces as a protocol-level
    fault; everything else is reported inside the tool result.
    """

    def __init__(self, tool_name: str, session_id: Optional[str] = None):
        self.tool_name = tool_name
        self.session_id = session_id
        super().__init__(f"Tool '{tool_name}' not found")


class ToolExecutionError(DynamicToolsError):
    """Raised by a tool handler to report a handler-level failure."""

    pass


class SessionNotBoundError(DynamicToolsError):
    """Raised when an MCP request is handled outside of a bound session."""

    def __init__(self, method: str):
        super().__init__(
            f"No client session is bound to the current context while handling "
            f"'{method}'. Transports must run the MCP server inside "
            "SessionManager.bind()."
        )

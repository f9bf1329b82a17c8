"""
Dynamic Tools - an MCP server whose tool list evolves as it is used.

Every client session starts from a small seed registry.  Invoking a tool
runs the configured mutation policies, which add or retire tools for that
session only, and the client is told to re-list through a
``notifications/tools/list_changed`` signal.
"""

from dynamic_tools.constants import SERVER_NAME, SERVER_VERSION

__version__ = SERVER_VERSION
__app_name__ = SERVER_NAME

__all__ = [
    "SERVER_NAME",
    "SERVER_VERSION",
    "__version__",
    "__app_name__",
]

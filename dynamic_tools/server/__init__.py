"""MCP server: request handlers, dispatch, notification, sessions and transports."""

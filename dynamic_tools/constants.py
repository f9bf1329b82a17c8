"""Shared constants for Dynamic Tools."""

SERVER_NAME = "dynamic-tools-demo"
SERVER_VERSION = "1.0.0"

# Network defaults
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 9000
DEFAULT_TRANSPORT = "streamable-http"

# HTTP transport paths
SSE_PATH = "/sse"
POST_MESSAGES_PATH = "/messages/"
STREAMABLE_HTTP_PATH = "/mcp"

# Logging defaults
LOG_DIR = "logs"
DEFAULT_LOG_FILE = "unknown_dynamic_tools.log"
DEFAULT_LOG_LEVEL = "INFO"

# Session housekeeping
SESSION_CLEANUP_INTERVAL = 60.0  # seconds between idle-session sweeps

# Tool catalog
SEED_TOOL = "greet"
UNLOCK_TOOLS = ("calculate", "get_status", "followup")
FOLLOWUP_PREFIX = "followup"
MILESTONE_PREFIX = "milestone"
HISTORY_PREFIX = "history"

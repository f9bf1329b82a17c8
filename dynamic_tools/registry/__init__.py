"""Tool descriptor store."""

from dynamic_tools.registry.models import ToolCallContext, ToolDescriptor, ToolHandler, text_content
from dynamic_tools.registry.store import ToolRegistry

__all__ = [
    "ToolCallContext",
    "ToolDescriptor",
    "ToolHandler",
    "ToolRegistry",
    "text_content",
]

"""Tool descriptor data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from mcp import types as mcp_types


@dataclass(frozen=True)
class ToolCallContext:
    """Read-only view of the calling session handed to tool handlers.

    Captured after the invocation counter is incremented and before the
    mutation pass runs, so ``tool_names`` is the registry the caller saw.
    """

    session_id: str
    call_count: int
    tool_names: Tuple[str, ...] = ()

    @property
    def tool_count(self) -> int:
        return len(self.tool_names)


ToolHandler = Callable[[Dict[str, Any], ToolCallContext], Awaitable[List[mcp_types.TextContent]]]


@dataclass(frozen=True)
class ToolDescriptor:
    """An invocable tool: name, input contract, description and handler.

    Descriptors are immutable; registering another descriptor under the
    same name replaces the old one.
    """

    name: str
    description: str
    handler: ToolHandler = field(repr=False, compare=False)
    input_schema: Dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    kind: str = "static"
    """``"static"`` for catalog tools, otherwise the policy that minted it."""

    sequence: Optional[int] = None
    """Session counter value at mint time; orders minted tools."""

    def to_tool(self) -> mcp_types.Tool:
        """Return the MCP wire representation used by ``tools/list``."""
        return mcp_types.Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.input_schema,
        )


def text_content(text: str) -> List[mcp_types.TextContent]:
    """Wrap *text* as a single-fragment tool result."""
    return [mcp_types.TextContent(type="text", text=text)]

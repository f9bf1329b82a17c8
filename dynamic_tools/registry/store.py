"""Per-session tool descriptor store."""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from mcp import types as mcp_types

from dynamic_tools.registry.models import ToolDescriptor

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Holds the tools currently visible to one session.

    Pure in-memory state: the store never notifies anyone.  Writers are
    the session's mutation pass and the initial seeding; every other
    caller only reads.
    """

    def __init__(self, descriptors: Optional[Iterable[ToolDescriptor]] = None) -> None:
        self._tools: Dict[str, ToolDescriptor] = {}
        for descriptor in descriptors or ():
            self.add(descriptor)

    # ── Mutation ─────────────────────────────────────────────────────

    def add(self, descriptor: ToolDescriptor) -> None:
        """Insert *descriptor*, overwriting any tool with the same name."""
        replaced = descriptor.name in self._tools
        self._tools[descriptor.name] = descriptor
        logger.debug("%s tool: %s", "Replaced" if replaced else "Added", descriptor.name)

    def remove(self, name: str) -> bool:
        """Delete *name* if present.  Returns ``True`` if a tool was removed."""
        if self._tools.pop(name, None) is None:
            return False
        logger.debug("Removed tool: %s", name)
        return True

    # ── Queries ──────────────────────────────────────────────────────

    def get(self, name: str) -> Optional[ToolDescriptor]:
        return self._tools.get(name)

    def list_tools(self) -> List[mcp_types.Tool]:
        """Snapshot of the registry in MCP ``Tool`` form (insertion order)."""
        return [d.to_tool() for d in self._tools.values()]

    def names(self) -> Tuple[str, ...]:
        return tuple(self._tools)

    def snapshot(self) -> Dict[str, ToolDescriptor]:
        """Shallow copy of the name → descriptor mapping."""
        return dict(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __repr__(self) -> str:
        return f"ToolRegistry({list(self._tools)!r})"

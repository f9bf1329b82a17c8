"""Session data models for per-client MCP sessions."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from time import monotonic
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional
from uuid import uuid4

from mcp import types as mcp_types

from dynamic_tools.registry.store import ToolRegistry

if TYPE_CHECKING:
    from dynamic_tools.server.dispatcher import InvocationDispatcher

Emitter = Callable[[], Awaitable[None]]
Closer = Callable[[], Awaitable[None]]


@dataclass
class SessionState:
    """Everything one client session owns.

    The registry, the invocation counter and the dispatcher live and die
    with the session; nothing here is shared with another session.
    """

    registry: ToolRegistry = field(default_factory=ToolRegistry)
    id: str = field(default_factory=lambda: uuid4().hex)

    call_count: int = 0
    """Successful dispatches so far. Incremented before each mutation pass."""

    transport_type: str = ""
    """``"stdio"``, ``"sse"``, ``"streamable-http"`` or ``"memory"``."""

    created_at: float = field(default_factory=monotonic)
    last_active: float = field(default_factory=monotonic)

    ttl: Optional[float] = None
    """Idle time-to-live in seconds; ``None`` lives until the transport ends."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)
    """Serializes dispatches on this session."""

    dispatcher: Optional["InvocationDispatcher"] = field(default=None, repr=False, compare=False)
    emitter: Optional[Emitter] = field(default=None, repr=False, compare=False)
    """Sends ``notifications/tools/list_changed`` to the connected client."""

    closer: Optional[Closer] = field(default=None, repr=False, compare=False)
    """Terminates the underlying transport (idle expiry)."""

    @property
    def expired(self) -> bool:
        """``True`` if the session has been idle longer than its TTL."""
        if self.ttl is None:
            return False
        return (monotonic() - self.last_active) > self.ttl

    @property
    def age_seconds(self) -> float:
        return monotonic() - self.created_at

    @property
    def idle_seconds(self) -> float:
        return monotonic() - self.last_active

    def touch(self) -> None:
        """Update *last_active* to the current monotonic time."""
        self.last_active = monotonic()

    def attach_emitter(self, emitter: Emitter) -> None:
        """Remember how to reach the client; replaces any earlier emitter."""
        if self.emitter != emitter:
            self.emitter = emitter

    async def invoke(
        self, tool_name: str, arguments: Optional[Dict[str, Any]] = None
    ) -> mcp_types.CallToolResult:
        """Dispatch a tool call on this session."""
        if self.dispatcher is None:
            raise RuntimeError(f"Session {self.id} has no dispatcher; create it via SessionManager.")
        return await self.dispatcher.invoke(tool_name, arguments)

    async def close(self) -> None:
        """Ask the transport to end this session, if it can."""
        if self.closer is not None:
            await self.closer()

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the session for status output."""
        return {
            "id": self.id,
            "transport_type": self.transport_type,
            "call_count": self.call_count,
            "tool_count": len(self.registry),
            "tools": list(self.registry.names()),
            "age_seconds": round(self.age_seconds, 1),
            "idle_seconds": round(self.idle_seconds, 1),
            "ttl": self.ttl,
            "expired": self.expired,
        }

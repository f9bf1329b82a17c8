"""Session lifecycle management with TTL-based cleanup."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

from dynamic_tools.constants import SEED_TOOL, SESSION_CLEANUP_INTERVAL
from dynamic_tools.policy.engine import PolicyEngine
from dynamic_tools.registry.store import ToolRegistry
from dynamic_tools.server.dispatcher import InvocationDispatcher
from dynamic_tools.server.notifier import ChangeNotifier
from dynamic_tools.server.session.context import use_session
from dynamic_tools.server.session.models import Closer, SessionState
from dynamic_tools.tools.builtin import build_tool

logger = logging.getLogger(__name__)


class SessionManager:
    """Creates, tracks and destroys per-client sessions.

    Each session gets a fresh registry seeded from the catalog and its
    own dispatcher.  The policy engine and change notifier hold no
    per-session state and are shared.  A background task closes sessions
    that carry an idle TTL once they expire.

    Parameters
    ----------
    engine:
        Mutation policy engine run after every successful dispatch.
    notifier:
        Delivers list-changed signals to clients.
    seed_tools:
        Catalog tool names every new session starts with.
    idle_ttl:
        TTL handed to sessions whose transport can be closed on expiry.
    cleanup_interval:
        How often (in seconds) the cleanup loop runs.
    validate_arguments:
        Validate call arguments against tool input schemas.
    """

    def __init__(
        self,
        engine: PolicyEngine,
        notifier: Optional[ChangeNotifier] = None,
        seed_tools: Iterable[str] = (SEED_TOOL,),
        idle_ttl: Optional[float] = None,
        cleanup_interval: float = SESSION_CLEANUP_INTERVAL,
        validate_arguments: bool = True,
    ) -> None:
        self._sessions: Dict[str, SessionState] = {}
        self._engine = engine
        self._notifier = notifier or ChangeNotifier()
        self._seed_tools = list(seed_tools)
        self._idle_ttl = idle_ttl
        self._cleanup_interval = cleanup_interval
        self._validate_arguments = validate_arguments
        self._cleanup_task: Optional[asyncio.Task[None]] = None

    @property
    def engine(self) -> PolicyEngine:
        return self._engine

    @property
    def notifier(self) -> ChangeNotifier:
        return self._notifier

    @property
    def idle_ttl(self) -> Optional[float]:
        return self._idle_ttl

    @property
    def seed_tools(self) -> List[str]:
        return list(self._seed_tools)

    # ── Lifecycle ────────────────────────────────────────────────────

    def start(self) -> None:
        """Start the background cleanup loop."""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(self._cleanup_loop(), name="session-cleanup")
            logger.info(
                "Session cleanup started (interval=%.0fs, idle_ttl=%s).",
                self._cleanup_interval,
                self._idle_ttl,
            )

    async def stop(self) -> None:
        """Cancel the cleanup task, flush notifications and clear all sessions."""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
        await self._notifier.drain()
        count = len(self._sessions)
        self._sessions.clear()
        logger.info("SessionManager stopped. Cleared %d session(s).", count)

    # ── Session CRUD ─────────────────────────────────────────────────

    def create_session(
        self,
        transport_type: str = "",
        session_id: Optional[str] = None,
        ttl: Optional[float] = None,
        closer: Optional[Closer] = None,
    ) -> SessionState:
        """Create a session with a freshly seeded registry.

        Parameters
        ----------
        transport_type:
            Transport label, for status output.
        session_id:
            Optional pre-assigned id (streamable HTTP uses ``Mcp-Session-Id``).
        ttl:
            Idle time-to-live; only meaningful together with *closer*.
        closer:
            Coroutine function that terminates the transport on expiry.
        """
        registry = ToolRegistry(build_tool(name) for name in self._seed_tools)
        state = SessionState(
            registry=registry,
            transport_type=transport_type,
            ttl=ttl,
            closer=closer,
        )
        if session_id:
            state.id = session_id
        state.dispatcher = InvocationDispatcher(
            state,
            self._engine,
            self._notifier,
            validate_arguments=self._validate_arguments,
        )
        self._sessions[state.id] = state
        logger.info(
            "Session created: id=%s transport=%s tools=%s ttl=%s",
            state.id,
            transport_type,
            list(registry.names()),
            ttl,
        )
        return state

    def get_session(self, session_id: str) -> Optional[SessionState]:
        """Return the session if it exists and is not expired.

        Refreshes the idle timer.  Expired sessions are left for the
        cleanup loop, which also closes their transport.
        """
        state = self._sessions.get(session_id)
        if state is None or state.expired:
            return None
        state.touch()
        return state

    def destroy_session(self, session_id: str) -> bool:
        """Discard a session and its registry.  Returns ``True`` if it existed."""
        state = self._sessions.pop(session_id, None)
        if state is None:
            return False
        logger.info(
            "Session destroyed: id=%s calls=%d tools=%d",
            session_id,
            state.call_count,
            len(state.registry),
        )
        return True

    @asynccontextmanager
    async def bind(
        self,
        transport_type: str,
        session_id: Optional[str] = None,
        ttl: Optional[float] = None,
        closer: Optional[Closer] = None,
    ) -> AsyncIterator[SessionState]:
        """Create a session, bind it to the current context, destroy it on exit.

        Transports wrap ``Server.run`` in this so request handlers can find
        their session.
        """
        state = self.create_session(transport_type, session_id, ttl=ttl, closer=closer)
        try:
            with use_session(state):
                yield state
        finally:
            self.destroy_session(state.id)

    # ── Queries ──────────────────────────────────────────────────────

    @property
    def active_count(self) -> int:
        """Number of non-expired sessions."""
        return sum(1 for s in self._sessions.values() if not s.expired)

    def list_sessions(self) -> List[Dict[str, Any]]:
        """Return a list of session summaries."""
        return [s.to_dict() for s in self._sessions.values() if not s.expired]

    # ── Internal ─────────────────────────────────────────────────────

    async def _expire(self, state: SessionState) -> None:
        try:
            await state.close()
        except Exception:
            logger.warning("Closing expired session %s failed.", state.id, exc_info=True)
        self.destroy_session(state.id)

    async def _cleanup_loop(self) -> None:
        """Periodically close and remove expired sessions."""
        try:
            while True:
                await asyncio.sleep(self._cleanup_interval)
                expired = [s for s in self._sessions.values() if s.expired]
                for state in expired:
                    await self._expire(state)
                if expired:
                    logger.info(
                        "Session cleanup: removed %d expired session(s), " "%d remaining.",
                        len(expired),
                        len(self._sessions),
                    )
        except asyncio.CancelledError:
            logger.debug("Session cleanup loop cancelled.")

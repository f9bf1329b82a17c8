"""Binds a :class:`SessionState` to the task context serving one client.

Transports set the binding in the task that runs ``Server.run``; the MCP
server spawns request handlers from that task, so every handler for the
connection inherits the same session.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

from dynamic_tools.errors import SessionNotBoundError
from dynamic_tools.server.session.models import SessionState

_current_session: ContextVar[Optional[SessionState]] = ContextVar(
    "dynamic_tools_current_session", default=None
)


def current_session(method: str = "request") -> SessionState:
    """Return the session bound to this context or raise SessionNotBoundError."""
    state = _current_session.get()
    if state is None:
        raise SessionNotBoundError(method)
    return state


@contextmanager
def use_session(state: SessionState) -> Iterator[SessionState]:
    """Bind *state* for the duration of the ``with`` block."""
    token = _current_session.set(state)
    try:
        yield state
    finally:
        _current_session.reset(token)

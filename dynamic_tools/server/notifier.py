"""Fire-and-forget ``notifications/tools/list_changed`` delivery."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Set

if TYPE_CHECKING:
    from dynamic_tools.server.session.models import SessionState

logger = logging.getLogger(__name__)


class ChangeNotifier:
    """Tells a session's client that its tool list is stale.

    :meth:`notify_changed` only schedules delivery; the caller never waits
    for the client.  A failed delivery is logged and counted, never
    retried, and never undoes the registry change that triggered it: the
    client still sees the right tools on its next ``tools/list``.
    """

    def __init__(self) -> None:
        self._pending: Set[asyncio.Task[None]] = set()
        self.sent = 0
        self.failed = 0

    def notify_changed(self, session: "SessionState") -> None:
        """Queue one list-changed signal for *session*'s client."""
        emitter = session.emitter
        if emitter is None:
            logger.debug("Session %s has no client attached; list change not signalled.", session.id)
            return
        task = asyncio.create_task(
            self._deliver(session.id, emitter, len(session.registry)),
            name=f"tools-list-changed-{session.id}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(
        self,
        session_id: str,
        emitter: Callable[[], Awaitable[None]],
        tool_count: int,
    ) -> None:
        try:
            await emitter()
        except Exception as exc:
            self.failed += 1
            logger.warning(
                "Failed to send tools/list_changed to session %s: %s",
                session_id,
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            return
        self.sent += 1
        logger.debug(
            "Sent tools/list_changed to session %s (%d tools available).",
            session_id,
            tool_count,
        )

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every queued delivery to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

"""Invocation dispatcher: one tool call, start to finish, for one session."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

import jsonschema
from mcp import types as mcp_types

from dynamic_tools.errors import ToolNotFoundError
from dynamic_tools.policy.base import InvocationRecord
from dynamic_tools.policy.engine import PolicyEngine
from dynamic_tools.registry.models import ToolCallContext, ToolDescriptor, text_content
from dynamic_tools.server.notifier import ChangeNotifier

if TYPE_CHECKING:
    from dynamic_tools.server.session.models import SessionState

logger = logging.getLogger(__name__)


def error_result(tool_name: str, message: str) -> mcp_types.CallToolResult:
    """Build the ``isError`` result reported for a failed handler."""
    return mcp_types.CallToolResult(
        content=text_content(f"Error executing {tool_name}: {message}"),
        isError=True,
    )


class InvocationDispatcher:
    """Runs tool calls for a single session.

    A dispatch holds the session lock from the registry lookup until the
    notification for its mutation pass has been queued, so calls on one
    session never interleave.  Other sessions have their own lock and
    are unaffected.
    """

    def __init__(
        self,
        session: "SessionState",
        engine: PolicyEngine,
        notifier: ChangeNotifier,
        validate_arguments: bool = True,
    ) -> None:
        self._session = session
        self._engine = engine
        self._notifier = notifier
        self._validate_arguments = validate_arguments

    async def invoke(
        self,
        tool_name: str,
        arguments: Optional[Dict[str, Any]] = None,
    ) -> mcp_types.CallToolResult:
        """Execute *tool_name* and run the mutation pass.

        Raises:
            ToolNotFoundError: *tool_name* is not in the registry when the
                call starts.  Nothing is counted or mutated.
        """
        session = self._session
        async with session.lock:
            descriptor = session.registry.get(tool_name)
            if descriptor is None:
                logger.warning("Session %s: tool '%s' not found.", session.id, tool_name)
                raise ToolNotFoundError(tool_name, session.id)

            session.call_count += 1
            call_count = session.call_count
            logger.info(
                "Session %s: executing tool '%s' (call #%d).",
                session.id,
                tool_name,
                call_count,
            )

            ctx = ToolCallContext(
                session_id=session.id,
                call_count=call_count,
                tool_names=session.registry.names(),
            )
            result = await self._execute(descriptor, arguments or {}, ctx)

            outcome = self._engine.apply(session.registry, InvocationRecord(tool_name, call_count))
            if outcome.changed:
                self._notifier.notify_changed(session)
            return result

    async def _execute(
        self,
        descriptor: ToolDescriptor,
        arguments: Dict[str, Any],
        ctx: ToolCallContext,
    ) -> mcp_types.CallToolResult:
        """Run the handler; any failure becomes an ``isError`` result."""
        if self._validate_arguments:
            try:
                jsonschema.validate(instance=arguments, schema=descriptor.input_schema)
            except jsonschema.ValidationError as exc:
                logger.info("Tool '%s' rejected arguments: %s", descriptor.name, exc.message)
                return error_result(descriptor.name, f"Input validation error: {exc.message}")

        try:
            content = await descriptor.handler(arguments, ctx)
        except Exception as exc:
            # (dispatch boundary: handler failures are reported, not raised)
            logger.error(
                "Tool '%s' failed in session %s: %s",
                descriptor.name,
                ctx.session_id,
                exc,
                exc_info=True,
            )
            return error_result(descriptor.name, str(exc))
        return mcp_types.CallToolResult(content=list(content), isError=False)

"""Built-in tool catalog.

Static tools are looked up by name (seed tools, unlock sets).  The
``mint_*`` builders create the per-call tools that the follow-up,
milestone and history policies add; each one closes over the counter
value it was minted at.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

from mcp import types as mcp_types

from dynamic_tools.constants import FOLLOWUP_PREFIX, HISTORY_PREFIX, MILESTONE_PREFIX
from dynamic_tools.errors import ToolExecutionError
from dynamic_tools.registry.models import ToolCallContext, ToolDescriptor, text_content
from dynamic_tools.tools.calculator import evaluate_expression

logger = logging.getLogger(__name__)


def _followup_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "action": {
                "type": "string",
                "description": "Action to take as a followup",
            },
            "details": {
                "type": "string",
                "description": "Additional details for the action",
            },
        },
        "required": ["action"],
    }


def _require_str(arguments: Dict[str, Any], key: str) -> str:
    value = arguments.get(key)
    if not isinstance(value, str):
        raise ToolExecutionError(f"'{key}' must be a string")
    return value


def _followup_text(arguments: Dict[str, Any], origin: str) -> str:
    action = _require_str(arguments, "action")
    details = arguments.get("details")
    suffix = f" - {details}" if details else ""
    return f"Executing followup action: {action}{suffix}\n({origin})"


# ── Static tools ─────────────────────────────────────────────────────────


def greet_tool() -> ToolDescriptor:
    async def handler(
        arguments: Dict[str, Any], ctx: ToolCallContext
    ) -> List[mcp_types.TextContent]:
        name = _require_str(arguments, "name")
        return text_content(
            f"Hello, {name}! This server has been called {ctx.call_count} times."
        )

    return ToolDescriptor(
        name="greet",
        description="Generate a personalized greeting",
        handler=handler,
        input_schema={
            "type": "object",
            "properties": {
                "name": {
                    "type": "string",
                    "description": "Name of the person to greet",
                },
            },
            "required": ["name"],
        },
    )


def calculate_tool() -> ToolDescriptor:
    async def handler(
        arguments: Dict[str, Any], ctx: ToolCallContext
    ) -> List[mcp_types.TextContent]:
        expression = _require_str(arguments, "expression")
        result = evaluate_expression(expression)
        return text_content(f"Calculation: {expression} = {result}")

    return ToolDescriptor(
        name="calculate",
        description="Perform basic mathematical calculations",
        handler=handler,
        input_schema={
            "type": "object",
            "properties": {
                "expression": {
                    "type": "string",
                    "description": (
                        "Mathematical expression (e.g., '5 + 3', '10 - 2', '4 * 6', '8 / 2')"
                    ),
                },
            },
            "required": ["expression"],
        },
    )


def status_tool() -> ToolDescriptor:
    async def handler(
        arguments: Dict[str, Any], ctx: ToolCallContext
    ) -> List[mcp_types.TextContent]:
        return text_content(
            "Server Status:\n"
            f"- Total calls: {ctx.call_count}\n"
            f"- Available tools: {ctx.tool_count}\n"
            f"- Tools: {', '.join(ctx.tool_names)}"
        )

    return ToolDescriptor(
        name="get_status",
        description="Get current server status and tool count",
        handler=handler,
        input_schema={
            "type": "object",
            "properties": {},
            "additionalProperties": False,
        },
    )


def followup_tool() -> ToolDescriptor:
    async def handler(
        arguments: Dict[str, Any], ctx: ToolCallContext
    ) -> List[mcp_types.TextContent]:
        return text_content(
            _followup_text(arguments, "This followup tool was unlocked after greeting!")
        )

    return ToolDescriptor(
        name="followup",
        description="Execute a followup action after greeting",
        handler=handler,
        input_schema=_followup_schema(),
    )


STATIC_TOOLS: Dict[str, Callable[[], ToolDescriptor]] = {
    "greet": greet_tool,
    "calculate": calculate_tool,
    "get_status": status_tool,
    "followup": followup_tool,
}


def build_tool(name: str) -> ToolDescriptor:
    """Return a fresh descriptor for the catalog tool *name*.

    Raises ``KeyError`` for names that are not in :data:`STATIC_TOOLS`.
    """
    try:
        factory = STATIC_TOOLS[name]
    except KeyError:
        raise KeyError(
            f"Unknown tool '{name}'. Available: {', '.join(sorted(STATIC_TOOLS))}"
        ) from None
    return factory()


# ── Minted tools ─────────────────────────────────────────────────────────


def mint_followup(call_count: int, called_tool: str) -> ToolDescriptor:
    async def handler(
        arguments: Dict[str, Any], ctx: ToolCallContext
    ) -> List[mcp_types.TextContent]:
        return text_content(
            _followup_text(arguments, f"This tool was created after calling '{called_tool}'")
        )

    return ToolDescriptor(
        name=f"{FOLLOWUP_PREFIX}_{call_count}",
        description=f"Followup tool created after calling '{called_tool}' (call #{call_count})",
        handler=handler,
        input_schema=_followup_schema(),
        kind=FOLLOWUP_PREFIX,
        sequence=call_count,
    )


def mint_milestone(call_count: int, called_tool: str) -> ToolDescriptor:
    async def handler(
        arguments: Dict[str, Any], ctx: ToolCallContext
    ) -> List[mcp_types.TextContent]:
        celebration = _require_str(arguments, "celebration")
        return text_content(
            f"🎉 Milestone {call_count} reached! Celebration: {celebration}\n\n"
            f"You've made {ctx.call_count} tool calls total!"
        )

    return ToolDescriptor(
        name=f"{MILESTONE_PREFIX}_{call_count}",
        description=f"Milestone celebration tool for reaching {call_count} calls!",
        handler=handler,
        input_schema={
            "type": "object",
            "properties": {
                "celebration": {
                    "type": "string",
                    "description": "How to celebrate this milestone",
                },
            },
            "required": ["celebration"],
        },
        kind=MILESTONE_PREFIX,
        sequence=call_count,
    )


def mint_history(call_count: int, called_tool: str) -> ToolDescriptor:
    async def handler(
        arguments: Dict[str, Any], ctx: ToolCallContext
    ) -> List[mcp_types.TextContent]:
        query = _require_str(arguments, "query")
        return text_content(
            f'Call History Query: "{query}"\n\n'
            f"Response: You've made {call_count} calls total. "
            f"The last tool called was '{called_tool}'. "
            "This server demonstrates dynamic tool creation!"
        )

    return ToolDescriptor(
        name=f"{HISTORY_PREFIX}_{call_count}",
        description=f"History tool - knows about your {call_count} calls",
        handler=handler,
        input_schema={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "What to know about the call history",
                },
            },
            "required": ["query"],
        },
        kind=HISTORY_PREFIX,
        sequence=call_count,
    )

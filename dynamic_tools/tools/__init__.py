"""Concrete tools: the static catalog and the per-call minted tools."""

from dynamic_tools.tools.builtin import (
    STATIC_TOOLS,
    build_tool,
    mint_followup,
    mint_history,
    mint_milestone,
)
from dynamic_tools.tools.calculator import evaluate_expression

__all__ = [
    "STATIC_TOOLS",
    "build_tool",
    "evaluate_expression",
    "mint_followup",
    "mint_history",
    "mint_milestone",
]

"""Mutation policy interface and the records passed through a mutation pass."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Mapping, Tuple

from dynamic_tools.registry.models import ToolDescriptor


@dataclass(frozen=True)
class InvocationRecord:
    """What just happened: the tool invoked and the post-increment counter."""

    tool_name: str
    call_count: int


@dataclass(frozen=True)
class MutationOutcome:
    """Net effect of one mutation pass on a registry."""

    added: Tuple[str, ...] = ()
    removed: Tuple[str, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


class MutationPolicy(ABC):
    """Base class for registry mutation policies.

    A policy is a pure transform: given the current tools and the
    invocation that just completed, return the tools that should exist
    afterwards.  It must not modify *tools* in place and must not fail;
    an exception here is a bug, not a runtime condition.
    """

    name: str = "policy"

    @abstractmethod
    def apply(
        self,
        tools: Mapping[str, ToolDescriptor],
        record: InvocationRecord,
    ) -> Dict[str, ToolDescriptor]:
        """Return the post-invocation tool mapping."""

    def describe(self) -> str:
        """One-line human summary (used by ``dynamic-tools tools``)."""
        return self.name

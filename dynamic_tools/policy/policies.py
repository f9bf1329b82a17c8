"""Built-in mutation policies.

Policies:
    - **unlock**: invoking a trigger tool adds a fixed set of tools.
    - **followup_window**: every call mints ``followup_<n>`` and retires all
      but the newest *keep* of them.
    - **milestone** / **history**: every *every*-th call mints a tool named
      after the counter value.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Mapping, Sequence

from dynamic_tools.constants import FOLLOWUP_PREFIX
from dynamic_tools.policy.base import InvocationRecord, MutationPolicy
from dynamic_tools.registry.models import ToolDescriptor
from dynamic_tools.tools.builtin import mint_followup, mint_history, mint_milestone

logger = logging.getLogger(__name__)

Minter = Callable[[int, str], ToolDescriptor]


class UnlockPolicy(MutationPolicy):
    """Add the unlock set when *trigger* is invoked.

    Only tools that are missing are added, so the first invocation of the
    trigger changes the registry and later ones do not.  Never removes
    anything, including the trigger itself.
    """

    name = "unlock"

    def __init__(self, trigger: str, unlocks: Sequence[Callable[[], ToolDescriptor]]) -> None:
        self.trigger = trigger
        self._unlocks = list(unlocks)

    def apply(
        self,
        tools: Mapping[str, ToolDescriptor],
        record: InvocationRecord,
    ) -> Dict[str, ToolDescriptor]:
        result = dict(tools)
        if record.tool_name != self.trigger:
            return result
        for factory in self._unlocks:
            descriptor = factory()
            if descriptor.name not in result:
                result[descriptor.name] = descriptor
        return result

    def describe(self) -> str:
        names = ", ".join(factory().name for factory in self._unlocks)
        return f"unlock: '{self.trigger}' unlocks {names}"


class FollowupWindowPolicy(MutationPolicy):
    """Mint a follow-up tool per call and keep only the newest *keep*.

    Recency is the descriptor's ``sequence`` (the session counter), so the
    window is well defined no matter how fast calls arrive.
    """

    name = "followup_window"

    def __init__(self, keep: int = 3, minter: Minter = mint_followup) -> None:
        if keep < 1:
            raise ValueError("keep must be at least 1")
        self.keep = keep
        self._minter = minter

    def apply(
        self,
        tools: Mapping[str, ToolDescriptor],
        record: InvocationRecord,
    ) -> Dict[str, ToolDescriptor]:
        result = dict(tools)
        minted = self._minter(record.call_count, record.tool_name)
        result[minted.name] = minted

        window = sorted(
            (d for d in result.values() if d.kind == FOLLOWUP_PREFIX and d.sequence is not None),
            key=lambda d: d.sequence,  # type: ignore[arg-type,return-value]
        )
        for stale in window[: -self.keep]:
            del result[stale.name]
        return result

    def describe(self) -> str:
        return f"followup_window: mint a followup per call, keep the newest {self.keep}"


class CounterMilestonePolicy(MutationPolicy):
    """Mint a tool whenever the counter is a multiple of *every*."""

    name = "counter"

    def __init__(self, every: int, minter: Minter) -> None:
        if every < 1:
            raise ValueError("every must be at least 1")
        self.every = every
        self._minter = minter

    def apply(
        self,
        tools: Mapping[str, ToolDescriptor],
        record: InvocationRecord,
    ) -> Dict[str, ToolDescriptor]:
        result = dict(tools)
        if record.call_count % self.every == 0:
            minted = self._minter(record.call_count, record.tool_name)
            result[minted.name] = minted
        return result

    def describe(self) -> str:
        return f"{self.name}: every {self.every} call(s)"


class MilestonePolicy(CounterMilestonePolicy):
    name = "milestone"

    def __init__(self, every: int = 5) -> None:
        super().__init__(every, mint_milestone)


class HistoryPolicy(CounterMilestonePolicy):
    name = "history"

    def __init__(self, every: int = 3) -> None:
        super().__init__(every, mint_history)

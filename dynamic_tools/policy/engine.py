"""Mutation policy engine: runs the configured policies as one atomic pass."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence

from dynamic_tools.policy.base import InvocationRecord, MutationOutcome, MutationPolicy
from dynamic_tools.policy.policies import (
    FollowupWindowPolicy,
    HistoryPolicy,
    MilestonePolicy,
    UnlockPolicy,
)
from dynamic_tools.registry.models import ToolDescriptor
from dynamic_tools.registry.store import ToolRegistry
from dynamic_tools.tools.builtin import STATIC_TOOLS

if TYPE_CHECKING:
    from dynamic_tools.config.schema import PolicyConfig

logger = logging.getLogger(__name__)


class PolicyEngine:
    """Chains mutation policies and applies their net result to a registry.

    The pass is synchronous: the snapshot, every policy, and the writes
    back to the registry happen without yielding to the event loop, so no
    other task can observe a half-applied mutation.

    Parameters
    ----------
    policies:
        Policies in the order they run; each sees the previous one's output.
    protected_tools:
        Names no policy may remove.  A removal of a protected tool is
        dropped from the pass.
    """

    def __init__(
        self,
        policies: Optional[Sequence[MutationPolicy]] = None,
        protected_tools: Iterable[str] = (),
    ) -> None:
        self._policies: List[MutationPolicy] = list(policies or [])
        self._protected = frozenset(protected_tools)
        logger.info(
            "PolicyEngine initialized (policies: %s, protected: %s).",
            [p.name for p in self._policies] or "none",
            sorted(self._protected) or "none",
        )

    @property
    def policies(self) -> List[MutationPolicy]:
        return list(self._policies)

    @property
    def protected_tools(self) -> frozenset:
        return self._protected

    def plan(
        self,
        tools: Dict[str, ToolDescriptor],
        record: InvocationRecord,
    ) -> Dict[str, ToolDescriptor]:
        """Run every policy over *tools* and return the resulting mapping."""
        result = dict(tools)
        for policy in self._policies:
            result = policy.apply(result, record)
        for name in self._protected:
            if name in tools and name not in result:
                logger.debug("Policy pass tried to remove protected tool '%s'; kept.", name)
                result[name] = tools[name]
        return result

    def apply(self, registry: ToolRegistry, record: InvocationRecord) -> MutationOutcome:
        """Mutate *registry* for *record* and report what changed."""
        before = registry.snapshot()
        after = self.plan(before, record)

        removed = tuple(name for name in before if name not in after)
        added = tuple(name for name, d in after.items() if before.get(name) is not d)
        for name in removed:
            registry.remove(name)
        for name in added:
            registry.add(after[name])

        outcome = MutationOutcome(added=added, removed=removed)
        if outcome.changed:
            logger.info(
                "Mutation after '%s' (call #%d): +%s -%s (%d tools).",
                record.tool_name,
                record.call_count,
                list(added),
                list(removed),
                len(registry),
            )
        return outcome


def create_policy(cfg: "PolicyConfig") -> MutationPolicy:
    """Factory: build a policy from its validated config entry."""
    if cfg.type == "unlock":
        return UnlockPolicy(cfg.trigger, [STATIC_TOOLS[name] for name in cfg.tools])
    if cfg.type == "followup_window":
        return FollowupWindowPolicy(keep=cfg.keep)
    if cfg.type == "milestone":
        return MilestonePolicy(every=cfg.every)
    if cfg.type == "history":
        return HistoryPolicy(every=cfg.every)
    raise ValueError(f"Unknown policy type '{cfg.type}'")


def create_engine(
    policy_cfgs: Sequence["PolicyConfig"],
    protected_tools: Iterable[str] = (),
) -> PolicyEngine:
    return PolicyEngine([create_policy(c) for c in policy_cfgs], protected_tools)

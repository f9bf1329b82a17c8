"""Mutation policy engine - decides how a registry evolves after each call."""

from dynamic_tools.policy.base import InvocationRecord, MutationOutcome, MutationPolicy
from dynamic_tools.policy.engine import PolicyEngine, create_engine, create_policy
from dynamic_tools.policy.policies import (
    CounterMilestonePolicy,
    FollowupWindowPolicy,
    HistoryPolicy,
    MilestonePolicy,
    UnlockPolicy,
)

__all__ = [
    "CounterMilestonePolicy",
    "FollowupWindowPolicy",
    "HistoryPolicy",
    "InvocationRecord",
    "MilestonePolicy",
    "MutationOutcome",
    "MutationPolicy",
    "PolicyEngine",
    "UnlockPolicy",
    "create_engine",
    "create_policy",
]

"""Pydantic configuration models for Dynamic Tools.

Defines the validated config structure using the versioned v1 format.
"""

from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from dynamic_tools.constants import DEFAULT_HOST, DEFAULT_PORT, SEED_TOOL, UNLOCK_TOOLS
from dynamic_tools.tools.builtin import STATIC_TOOLS


def _check_known_tools(names: List[str]) -> List[str]:
    unknown = [n for n in names if n not in STATIC_TOOLS]
    if unknown:
        raise ValueError(
            f"Unknown tool(s) {unknown}. Available: {', '.join(sorted(STATIC_TOOLS))}"
        )
    return names


# ── Server settings ─────────────────────────────────────────────────────


class ServerSettings(BaseModel):
    """Server settings (host, port, transport)."""

    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    transport: Literal["stdio", "sse", "streamable-http"] = "streamable-http"

    @field_validator("transport", mode="before")
    @classmethod
    def _normalise_transport(cls, v: str) -> str:
        """Accept 'http' as a shorthand for 'streamable-http'."""
        if isinstance(v, str) and v.strip().lower() == "http":
            return "streamable-http"
        return v


class SessionSettings(BaseModel):
    """Client session housekeeping."""

    idle_ttl: Optional[float] = Field(
        default=None,
        gt=0,
        description=(
            "Seconds a streamable-http session may stay idle before it is "
            "terminated. null keeps sessions until the client ends them."
        ),
    )
    cleanup_interval: float = Field(
        default=60.0,
        gt=0,
        description="Seconds between idle-session sweeps.",
    )


class RegistrySettings(BaseModel):
    """Initial registry contents and removal protection."""

    seed_tools: List[str] = Field(
        default_factory=lambda: [SEED_TOOL],
        min_length=1,
        description="Tools every new session starts with.",
    )
    protected_tools: Optional[List[str]] = Field(
        default=None,
        description="Tools no policy may remove. Defaults to the seed tools.",
    )
    validate_arguments: bool = Field(
        default=True,
        description="Validate call arguments against each tool's input schema.",
    )

    @field_validator("seed_tools")
    @classmethod
    def _known_seed_tools(cls, v: List[str]) -> List[str]:
        return _check_known_tools(v)

    @field_validator("protected_tools")
    @classmethod
    def _known_protected_tools(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        return _check_known_tools(v)

    @property
    def effective_protected_tools(self) -> List[str]:
        if self.protected_tools is None:
            return list(self.seed_tools)
        return list(self.protected_tools)


# ── Mutation policies ───────────────────────────────────────────────────


class UnlockPolicyConfig(BaseModel):
    """Invoking *trigger* adds *tools* to the session."""

    type: Literal["unlock"]
    trigger: str = SEED_TOOL
    tools: List[str] = Field(default_factory=lambda: list(UNLOCK_TOOLS), min_length=1)

    @field_validator("tools")
    @classmethod
    def _known_unlock_tools(cls, v: List[str]) -> List[str]:
        return _check_known_tools(v)


class FollowupWindowPolicyConfig(BaseModel):
    """Mint a follow-up tool per call and keep the newest *keep*."""

    type: Literal["followup_window"]
    keep: int = Field(default=3, ge=1)


class MilestonePolicyConfig(BaseModel):
    """Mint ``milestone_<n>`` every *every* calls."""

    type: Literal["milestone"]
    every: int = Field(default=5, ge=1)


class HistoryPolicyConfig(BaseModel):
    """Mint ``history_<n>`` every *every* calls."""

    type: Literal["history"]
    every: int = Field(default=3, ge=1)


# Discriminated union: pick the right model based on "type" field
PolicyConfig = Annotated[
    Union[
        UnlockPolicyConfig,
        FollowupWindowPolicyConfig,
        MilestonePolicyConfig,
        HistoryPolicyConfig,
    ],
    Field(discriminator="type"),
]


# ── Top-level config ────────────────────────────────────────────────────


class DynamicToolsConfig(BaseModel):
    """Top-level validated configuration for Dynamic Tools.

    Supports version ``"1"`` format::

        version: "1"
        server: { transport: sse, port: 9000 }
        registry: { seed_tools: [greet] }
        policies:
          - type: unlock
            trigger: greet
            tools: [calculate, get_status, followup]
    """

    version: str = "1"
    server: ServerSettings = Field(default_factory=ServerSettings)
    sessions: SessionSettings = Field(default_factory=SessionSettings)
    registry: RegistrySettings = Field(default_factory=RegistrySettings)
    policies: List[PolicyConfig] = Field(
        default_factory=lambda: [UnlockPolicyConfig(type="unlock")],
        description="Mutation policies, applied in order after every call.",
    )

    @field_validator("version", mode="before")
    @classmethod
    def _check_version(cls, v: object) -> str:
        v = str(v).strip()
        if v != "1":
            raise ValueError(f"Unsupported config version '{v}' (expected '1')")
        return v

    @model_validator(mode="after")
    def _check_unlock_triggers(self) -> "DynamicToolsConfig":
        # A trigger must be reachable: seeded, or unlocked by an earlier policy.
        reachable = set(self.registry.seed_tools)
        for policy in self.policies:
            if isinstance(policy, UnlockPolicyConfig):
                if policy.trigger not in reachable:
                    raise ValueError(
                        f"Unlock trigger '{policy.trigger}' is never available; "
                        "seed it or unlock it in an earlier policy."
                    )
                reachable.update(policy.tools)
        return self

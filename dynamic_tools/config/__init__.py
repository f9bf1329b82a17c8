"""Configuration loading and validation for Dynamic Tools."""

from dynamic_tools.config.env import expand_env_vars
from dynamic_tools.config.loader import find_config_file, load_config, validate_config
from dynamic_tools.config.schema import (
    DynamicToolsConfig,
    FollowupWindowPolicyConfig,
    HistoryPolicyConfig,
    MilestonePolicyConfig,
    PolicyConfig,
    RegistrySettings,
    ServerSettings,
    SessionSettings,
    UnlockPolicyConfig,
)

__all__ = [
    "DynamicToolsConfig",
    "FollowupWindowPolicyConfig",
    "HistoryPolicyConfig",
    "MilestonePolicyConfig",
    "PolicyConfig",
    "RegistrySettings",
    "ServerSettings",
    "SessionSettings",
    "UnlockPolicyConfig",
    "expand_env_vars",
    "find_config_file",
    "load_config",
    "validate_config",
]

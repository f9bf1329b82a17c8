"""Tests for configuration loading, env expansion and validation."""

from __future__ import annotations

import os

import pytest

from dynamic_tools.config import (
    DynamicToolsConfig,
    FollowupWindowPolicyConfig,
    UnlockPolicyConfig,
    expand_env_vars,
    find_config_file,
    load_config,
    validate_config,
)
from dynamic_tools.config.loader import CONFIG_ENV_VAR
from dynamic_tools.errors import ConfigurationError


def _write(tmp_path, name: str, text: str) -> str:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


# ── Defaults ─────────────────────────────────────────────────────────────


class TestDefaults:
    def test_load_without_file(self) -> None:
        cfg = load_config(None)
        assert cfg.server.transport == "streamable-http"
        assert cfg.server.port == 9000
        assert cfg.registry.seed_tools == ["greet"]
        assert cfg.registry.effective_protected_tools == ["greet"]
        assert cfg.sessions.idle_ttl is None
        assert len(cfg.policies) == 1
        unlock = cfg.policies[0]
        assert isinstance(unlock, UnlockPolicyConfig)
        assert unlock.trigger == "greet"
        assert unlock.tools == ["calculate", "get_status", "followup"]

    def test_empty_file_gives_defaults(self, tmp_path) -> None:
        cfg = load_config(_write(tmp_path, "config.yaml", ""))
        assert cfg == DynamicToolsConfig()


# ── Loading ──────────────────────────────────────────────────────────────


class TestLoadConfig:
    def test_full_file(self, tmp_path) -> None:
        path = _write(
            tmp_path,
            "config.yaml",
            """
version: "1"
server:
  transport: http
  port: 8123
sessions:
  idle_ttl: 30
registry:
  seed_tools: [greet, calculate]
  protected_tools: [greet]
policies:
  - type: followup_window
    keep: 2
  - type: milestone
  - type: history
    every: 4
""",
        )
        cfg = load_config(path)
        assert cfg.server.transport == "streamable-http"
        assert cfg.server.port == 8123
        assert cfg.sessions.idle_ttl == 30
        assert cfg.registry.effective_protected_tools == ["greet"]
        assert isinstance(cfg.policies[0], FollowupWindowPolicyConfig)
        assert cfg.policies[0].keep == 2
        assert cfg.policies[1].every == 5
        assert cfg.policies[2].every == 4

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="does not exist"):
            load_config(str(tmp_path / "nope.yaml"))

    def test_unsupported_extension(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="Unsupported config file extension"):
            load_config(_write(tmp_path, "config.json", "{}"))

    def test_invalid_yaml(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="Error reading"):
            load_config(_write(tmp_path, "config.yaml", "server: [unclosed"))

    def test_top_level_must_be_mapping(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(_write(tmp_path, "config.yaml", "- a\n- b\n"))

    def test_env_vars_are_expanded(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("DT_TEST_HOST", "0.0.0.0")
        path = _write(tmp_path, "config.yaml", "server:\n  host: ${DT_TEST_HOST}\n")
        assert load_config(path).server.host == "0.0.0.0"


# ── Validation ───────────────────────────────────────────────────────────


class TestValidation:
    def test_unsupported_version(self) -> None:
        with pytest.raises(ConfigurationError, match="Unsupported config version"):
            validate_config({"version": "2"})

    def test_unknown_seed_tool(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown tool"):
            validate_config({"registry": {"seed_tools": ["teleport"]}})

    def test_unknown_protected_tool(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown tool"):
            validate_config({"registry": {"protected_tools": ["nope"]}})

    def test_empty_protected_list_protects_nothing(self) -> None:
        cfg = validate_config({"registry": {"protected_tools": []}})
        assert cfg.registry.effective_protected_tools == []

    def test_unknown_policy_type(self) -> None:
        with pytest.raises(ConfigurationError):
            validate_config({"policies": [{"type": "shuffle"}]})

    def test_unreachable_trigger(self) -> None:
        with pytest.raises(ConfigurationError, match="never available"):
            validate_config(
                {"policies": [{"type": "unlock", "trigger": "calculate", "tools": ["followup"]}]}
            )

    def test_chained_unlock_is_reachable(self) -> None:
        cfg = validate_config(
            {
                "policies": [
                    {"type": "unlock", "trigger": "greet", "tools": ["calculate"]},
                    {"type": "unlock", "trigger": "calculate", "tools": ["get_status"]},
                ]
            }
        )
        assert len(cfg.policies) == 2

    def test_all_errors_reported_together(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            validate_config({"server": {"port": 0}, "policies": [{"type": "history", "every": 0}]})
        assert "2 error(s)" in str(exc_info.value)

    def test_empty_seed_list_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            validate_config({"registry": {"seed_tools": []}})


# ── Env expansion / discovery ────────────────────────────────────────────


class TestExpandEnvVars:
    def test_nested(self, monkeypatch) -> None:
        monkeypatch.setenv("DT_A", "x")
        assert expand_env_vars({"a": ["${DT_A}", 1], "b": "pre-${DT_A}"}) == {
            "a": ["x", 1],
            "b": "pre-x",
        }

    def test_unset_left_unchanged(self, monkeypatch) -> None:
        monkeypatch.delenv("DT_UNSET", raising=False)
        assert expand_env_vars("${DT_UNSET}") == "${DT_UNSET}"


class TestFindConfigFile:
    def test_env_var_wins(self, tmp_path, monkeypatch) -> None:
        _write(tmp_path, "config.yaml", "")
        monkeypatch.setenv(CONFIG_ENV_VAR, "/elsewhere/cfg.yaml")
        assert find_config_file([str(tmp_path)]) == "/elsewhere/cfg.yaml"

    def test_yaml_before_yml(self, tmp_path, monkeypatch) -> None:
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        _write(tmp_path, "config.yml", "")
        _write(tmp_path, "config.yaml", "")
        assert find_config_file([str(tmp_path)]) == os.path.join(str(tmp_path), "config.yaml")

    def test_nothing_found(self, tmp_path, monkeypatch) -> None:
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert find_config_file([str(tmp_path)]) is None

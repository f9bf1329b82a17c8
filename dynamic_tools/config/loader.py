"""Configuration file loading and validation.

Loads a YAML configuration file, expands ``${ENV_VAR}`` placeholders,
and validates against the Pydantic models defined in :mod:`schema`.
"""

import logging
import os
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from dynamic_tools.config.env import expand_env_vars
from dynamic_tools.config.schema import DynamicToolsConfig
from dynamic_tools.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Recognised config file extensions.
_YAML_EXTS = frozenset({".yaml", ".yml"})

# Config file search order (first match wins)
CONFIG_SEARCH_ORDER = ("config.yaml", "config.yml")
CONFIG_ENV_VAR = "DYNAMIC_TOOLS_CONFIG"


def _read_config_file(cfg_fpath: str) -> Dict[str, Any]:
    """Read and parse a YAML config file from *cfg_fpath*.

    Raises :class:`ConfigurationError` on I/O or parse errors.
    """
    ext = os.path.splitext(cfg_fpath)[1].lower()
    if ext not in _YAML_EXTS:
        raise ConfigurationError(
            f"Unsupported config file extension '{ext}'. "
            "Only YAML files (.yaml, .yml) are supported."
        )

    try:
        with open(cfg_fpath, "r", encoding="utf-8") as f:
            raw_data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Error reading configuration file: {cfg_fpath}\n  {exc}") from exc

    if raw_data is None:
        return {}
    if not isinstance(raw_data, dict):
        raise ConfigurationError(
            "Top-level configuration content must be a YAML mapping (dictionary)."
        )
    return raw_data


def _format_validation_errors(exc: ValidationError) -> str:
    """Format Pydantic validation errors into a readable multi-line string."""
    lines: List[str] = []
    for err in exc.errors():
        loc = " → ".join(str(part) for part in err["loc"]) or "(root)"
        lines.append(f"  • {loc}: {err['msg']}")
    return "\n".join(lines)


def validate_config(raw_data: Dict[str, Any]) -> DynamicToolsConfig:
    """Expand env vars in *raw_data* and validate it (all errors at once)."""
    raw_data = expand_env_vars(raw_data)
    try:
        return DynamicToolsConfig.model_validate(raw_data)
    except ValidationError as exc:
        error_summary = _format_validation_errors(exc)
        raise ConfigurationError(
            f"Configuration validation failed ({len(exc.errors())} error(s)):\n" f"{error_summary}"
        ) from exc


def find_config_file(search_dirs: Optional[List[str]] = None) -> Optional[str]:
    """Locate a config file: ``$DYNAMIC_TOOLS_CONFIG``, then config.yaml/.yml.

    Returns ``None`` when nothing is found; callers fall back to defaults.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return env_path
    for base_dir in search_dirs or [os.getcwd()]:
        for name in CONFIG_SEARCH_ORDER:
            candidate = os.path.join(base_dir, name)
            if os.path.isfile(candidate):
                return candidate
    return None


def load_config(cfg_fpath: Optional[str] = None) -> DynamicToolsConfig:
    """Load and validate *cfg_fpath*, or return defaults when it is ``None``.

    Raises:
        ConfigurationError: On file I/O errors, parse errors, or
            validation failures.
    """
    if cfg_fpath is None:
        logger.info("No configuration file given; using built-in defaults.")
        return DynamicToolsConfig()

    logger.debug("Loading configuration file: %s", cfg_fpath)
    if not os.path.exists(cfg_fpath):
        raise ConfigurationError(f"Configuration file does not exist: {cfg_fpath}")

    config = validate_config(_read_config_file(cfg_fpath))
    logger.info(
        "Configuration '%s' loaded (v%s). Seed tools: %s, %d polic(ies).",
        cfg_fpath,
        config.version,
        config.registry.seed_tools,
        len(config.policies),
    )
    return config

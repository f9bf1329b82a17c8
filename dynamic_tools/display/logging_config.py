"""File logging for the server process.

Everything goes to one timestamped file under ``logs/``; nothing is
logged to the console, because on stdio the console is the protocol.
"""

import logging
import logging.config
import os
import sys
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from dynamic_tools.constants import LOG_DIR

_VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_FILE_FORMAT = "%(asctime)s - %(name)25s:%(lineno)-4d - %(levelname)-7s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers whose level follows the CLI ``--log-level``.
_APP_LOGGERS = ("dynamic_tools", "mcp", "uvicorn", "uvicorn.error", "starlette")


def build_log_config(log_fpath: str, level: str) -> Dict[str, Any]:
    """Return a ``dictConfig`` mapping that sends all output to *log_fpath*."""
    verbose = level == "DEBUG"
    loggers: Dict[str, Dict[str, Any]] = {
        name: {"handlers": ["file_handler"], "propagate": False, "level": level}
        for name in _APP_LOGGERS
    }
    # Access lines are noise unless debugging.
    loggers["uvicorn.access"] = {
        "handlers": ["file_handler"],
        "propagate": False,
        "level": "INFO" if verbose else "WARNING",
    }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "file": {"format": _FILE_FORMAT, "datefmt": _DATE_FORMAT},
        },
        "handlers": {
            "file_handler": {
                "class": "logging.FileHandler",
                "level": "DEBUG",
                "formatter": "file",
                "filename": log_fpath,
                "encoding": "utf-8",
            },
        },
        "loggers": loggers,
        "root": {
            "handlers": ["file_handler"],
            "level": level if verbose else "WARNING",
        },
    }


def setup_logging(
    log_lvl_str: str,
    *,
    quiet: bool = False,
    log_dir: Optional[str] = None,
) -> Tuple[str, str]:
    """
    Set up the logging system.

    Args:
        log_lvl_str: The desired log level string (e.g., 'debug', 'info').
        quiet: If *True*, never print to stdout (stdio transport owns it).
        log_dir: Directory for the log file (default: ``logs/``).

    Returns:
        A tuple of (log_file_path, validated_log_level).
    """
    log_lvl_valid = log_lvl_str.upper()
    if log_lvl_valid not in _VALID_LEVELS:
        print(f"Warning: invalid log level '{log_lvl_str}'. Using 'INFO'.", file=sys.stderr)
        log_lvl_valid = "INFO"

    log_dir = log_dir or LOG_DIR
    os.makedirs(log_dir, exist_ok=True)
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_fpath = os.path.join(log_dir, f"dynamic_tools_{ts}_{log_lvl_valid}.log")

    try:
        logging.config.dictConfig(build_log_config(log_fpath, log_lvl_valid))
    except (ValueError, TypeError, AttributeError, ImportError, OSError) as e_log_cfg:
        print(f"Error applying logging configuration: {e_log_cfg}", file=sys.stderr)
    else:
        if not quiet:
            print(f"Logging initialized. File log level: {log_lvl_valid}, log file: {log_fpath}")

    return log_fpath, log_lvl_valid

"""Console status display and log-file status writing."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from dynamic_tools.constants import (
    DEFAULT_LOG_FILE,
    DEFAULT_LOG_LEVEL,
    SERVER_NAME,
    SERVER_VERSION,
    SSE_PATH,
    STREAMABLE_HTTP_PATH,
)

logger = logging.getLogger(__name__)

_LINE_LEN = 70


def gen_status_info(
    app_state: Optional[object],
    status_msg: str,
    seed_tools: Optional[List[str]] = None,
    policies: Optional[List[str]] = None,
    err_msg: Optional[str] = None,
) -> Dict[str, Any]:
    """Generate a structured dictionary of status information."""
    host = getattr(app_state, "host", "N/A")
    port = getattr(app_state, "port", 0)
    return {
        "ts": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "status_msg": status_msg,
        "host": host,
        "port": port,
        "log_fpath": getattr(app_state, "actual_log_file", DEFAULT_LOG_FILE),
        "log_lvl_cfg": getattr(app_state, "file_log_level_configured", DEFAULT_LOG_LEVEL),
        "sse_url": f"http://{host}:{port}{SSE_PATH}" if port > 0 else "N/A",
        "streamable_http_url": (
            f"http://{host}:{port}{STREAMABLE_HTTP_PATH}" if port > 0 else "N/A"
        ),
        "transport_type": getattr(app_state, "transport_type", "streamable-http"),
        "cfg_fpath": getattr(app_state, "config_file_path", None) or "built-in defaults",
        "seed_tools": seed_tools or [],
        "policies": policies or [],
        "err_msg": err_msg,
    }


def disp_console_status(stage: str, status_info: Dict[str, Any]) -> None:
    """Print formatted status information to the console (HTTP transports)."""
    header = f" {SERVER_NAME} v{SERVER_VERSION} "
    print(f"\n{'=' * _LINE_LEN}")
    print(f"{header:-^{_LINE_LEN}}")
    print(f"{'=' * _LINE_LEN}")
    print(f"[{status_info['ts']}] {stage} Status: {status_info['status_msg']}")

    if status_info["transport_type"] == "sse":
        print(f"    Endpoint (sse): {status_info['sse_url']}")
    else:
        print(f"    Endpoint (streamable-http): {status_info['streamable_http_url']}")
    print(f"    Config: {status_info['cfg_fpath']}")
    print(f"    Log File: {status_info['log_fpath']} (level: {status_info['log_lvl_cfg']})")
    if status_info["seed_tools"]:
        print(f"    Seed Tools: {', '.join(status_info['seed_tools'])}")
    for policy in status_info["policies"]:
        print(f"    Policy: {policy}")
    if status_info.get("err_msg"):
        print(f"    !! Error: {status_info['err_msg']}")
    print("-" * _LINE_LEN)


def log_file_status(status_info: Dict[str, Any], log_lvl: int = logging.INFO) -> None:
    """Write detailed status information to the log file."""
    log_lines = [
        f"Server Status Update: {status_info['status_msg']}",
        f"  SSE URL: {status_info['sse_url']}",
        f"  Streamable HTTP URL: {status_info['streamable_http_url']}",
        f"  Transport: {status_info['transport_type']}",
        f"  Config File Used: {status_info['cfg_fpath']}",
        f"  Configured File Log Level: {status_info['log_lvl_cfg']}",
        f"  Actual Log File: {status_info['log_fpath']}",
        f"  Seed Tools: {', '.join(status_info['seed_tools']) or '-'}",
    ]
    for policy in status_info["policies"]:
        log_lines.append(f"  Policy: {policy}")
    if status_info.get("err_msg"):
        log_lines.append(f"  Error Details: {status_info['err_msg']}")
    logger.log(log_lvl, "\n".join(log_lines))

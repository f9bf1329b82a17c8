"""CLI argument parsing and main entry point.

* ``dynamic-tools server`` — run the MCP server (stdio, SSE or streamable HTTP).
* ``dynamic-tools tools``  — print the tool catalog and the configured policies.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import socket
import sys
from typing import Optional

import uvicorn
from pydantic import ValidationError

from dynamic_tools.config.loader import find_config_file, load_config
from dynamic_tools.config.schema import DynamicToolsConfig, ServerSettings
from dynamic_tools.constants import SERVER_NAME, SERVER_VERSION
from dynamic_tools.display.logging_config import setup_logging
from dynamic_tools.errors import ConfigurationError

module_logger = logging.getLogger(__name__)

uvicorn_svr_inst: Optional[uvicorn.Server] = None


def _resolve_config(args: argparse.Namespace) -> tuple[DynamicToolsConfig, Optional[str]]:
    """Load the config (CLI flag → env var → auto-detect → defaults) and apply CLI overrides."""
    cfg_path = getattr(args, "config", None) or find_config_file()
    cfg_abs_path = os.path.abspath(cfg_path) if cfg_path else None
    config = load_config(cfg_abs_path)

    overrides = {
        key: value
        for key, value in (
            ("transport", getattr(args, "transport", None)),
            ("host", getattr(args, "host", None)),
            ("port", getattr(args, "port", None)),
        )
        if value is not None
    }
    if overrides:
        try:
            server = ServerSettings.model_validate({**config.server.model_dump(), **overrides})
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid command-line server settings:\n{exc}") from exc
        config = config.model_copy(update={"server": server})
    return config, cfg_abs_path


# ── ``dynamic-tools server`` ────────────────────────────────────────────


async def _run_stdio(config: DynamicToolsConfig) -> None:
    from dynamic_tools.runtime import build_runtime
    from dynamic_tools.server.transport import run_stdio

    runtime = build_runtime(config)
    try:
        await run_stdio(runtime.mcp_server, runtime.session_manager)
    finally:
        await runtime.session_manager.stop()


async def _run_http(
    config: DynamicToolsConfig,
    cfg_abs_path: Optional[str],
    log_fpath: str,
    cfg_log_lvl: str,
) -> None:
    """Async main for the SSE / streamable HTTP transports."""
    global uvicorn_svr_inst

    from dynamic_tools.server.app import create_app

    host, port = config.server.host, config.server.port
    app = create_app(config)
    app_s = app.state
    app_s.host = host
    app_s.port = port
    app_s.actual_log_file = log_fpath
    app_s.file_log_level_configured = cfg_log_lvl
    app_s.config_file_path = cfg_abs_path
    app_s.show_banner = True

    # Fail fast with a readable message instead of a uvicorn bind traceback.
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        probe.bind((host, port))
    except OSError as e_bind:
        module_logger.error("Port %s on %s is already in use: %s", port, host, e_bind)
        print(
            f"\nError: Port {port} on {host} is already in use.\n"
            f"   Release the port or choose a different one with --port.\n",
            file=sys.stderr,
        )
        return
    finally:
        probe.close()

    uvicorn_cfg = uvicorn.Config(
        app=app,
        host=host,
        port=port,
        log_config=None,
        log_level=cfg_log_lvl.lower() if cfg_log_lvl == "DEBUG" else "warning",
    )
    uvicorn_svr_inst = uvicorn.Server(uvicorn_cfg)

    module_logger.info("Preparing to start Uvicorn server: http://%s:%s", host, port)
    try:
        await uvicorn_svr_inst.serve()
    except (KeyboardInterrupt, SystemExit) as e_exit:
        module_logger.info("Server stopped due to '%s'.", type(e_exit).__name__)
    finally:
        module_logger.info("%s has shut down or is shutting down.", SERVER_NAME)


def _install_signal_handlers() -> None:
    def _shutdown_handler(sig: int, frame: object) -> None:
        module_logger.info("Signal %s received — shutting down gracefully…", sig)
        if uvicorn_svr_inst is not None:
            uvicorn_svr_inst.should_exit = True

    signal.signal(signal.SIGINT, _shutdown_handler)
    signal.signal(signal.SIGTERM, _shutdown_handler)


def _cmd_server(args: argparse.Namespace) -> None:
    """Entry-point for ``dynamic-tools server``."""
    try:
        config, cfg_abs_path = _resolve_config(args)
    except ConfigurationError as e_cfg:
        print(f"Configuration error: {e_cfg}", file=sys.stderr)
        sys.exit(2)

    # stdout belongs to the protocol on stdio.
    stdio = config.server.transport == "stdio"
    log_fpath, cfg_log_lvl = setup_logging(args.log_level, quiet=stdio)
    module_logger.info(
        "---- %s v%s starting (file log level: %s) ----",
        SERVER_NAME,
        SERVER_VERSION,
        cfg_log_lvl,
    )
    module_logger.info(
        "Configuration resolved (file: %s, transport: %s).",
        cfg_abs_path or "built-in defaults",
        config.server.transport,
    )

    try:
        if config.server.transport == "stdio":
            asyncio.run(_run_stdio(config))
        else:
            _install_signal_handlers()
            asyncio.run(_run_http(config, cfg_abs_path, log_fpath, cfg_log_lvl))
    except KeyboardInterrupt:
        module_logger.info("%s main program interrupted by KeyboardInterrupt.", SERVER_NAME)
    except Exception as e_fatal:
        module_logger.exception(
            "%s main program encountered an uncaught fatal error: %s",
            SERVER_NAME,
            e_fatal,
        )
        sys.exit(1)
    finally:
        module_logger.info("%s application finished.", SERVER_NAME)


# ── ``dynamic-tools tools`` ─────────────────────────────────────────────


def _cmd_tools(args: argparse.Namespace) -> None:
    """Print the static tool catalog and what the configured policies do."""
    from dynamic_tools.policy.engine import create_engine
    from dynamic_tools.tools.builtin import STATIC_TOOLS

    try:
        config, cfg_abs_path = _resolve_config(args)
    except ConfigurationError as e_cfg:
        print(f"Configuration error: {e_cfg}", file=sys.stderr)
        sys.exit(2)

    engine = create_engine(config.policies, config.registry.effective_protected_tools)
    print(f"{SERVER_NAME} v{SERVER_VERSION} ({cfg_abs_path or 'built-in defaults'})")
    print("\nCatalog:")
    for name, factory in STATIC_TOOLS.items():
        marker = "*" if name in config.registry.seed_tools else " "
        print(f"  {marker} {name:<12} {factory().description}")
    print("  (* = seed tool)")
    print(f"\nProtected: {', '.join(sorted(engine.protected_tools)) or '-'}")
    print("Policies:")
    for policy in engine.policies:
        print(f"  - {policy.describe()}")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser with server/tools subcommands."""
    parser = argparse.ArgumentParser(
        description=f"{SERVER_NAME} v{SERVER_VERSION}",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        metavar="PATH",
        help=(
            "Path to configuration file (YAML). "
            "Default: $DYNAMIC_TOOLS_CONFIG, then config.yaml/config.yml, then built-in defaults"
        ),
    )

    subparsers = parser.add_subparsers(dest="command")

    # ── server ──────────────────────────────────────────────────
    sp_server = subparsers.add_parser(
        "server",
        help="Run the MCP server",
    )
    sp_server.add_argument(
        "--transport",
        type=str,
        default=None,
        choices=["stdio", "sse", "streamable-http", "http"],
        help="Transport (default: from config, else streamable-http)",
    )
    sp_server.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host address (default: from config, else 127.0.0.1)",
    )
    sp_server.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port (default: from config, else 9000)",
    )
    sp_server.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Set file logging level (default: info)",
    )
    sp_server.set_defaults(func=_cmd_server)

    # ── tools ───────────────────────────────────────────────────
    sp_tools = subparsers.add_parser(
        "tools",
        help="List catalog tools and the configured mutation policies",
    )
    sp_tools.set_defaults(func=_cmd_tools)

    return parser


def main() -> None:
    """Program entry point: parse arguments and dispatch to subcommand."""
    parser = _build_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)
    else:
        args.func(args)

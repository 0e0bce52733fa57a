#!/usr/bin/env python3
"""
Command line entry point for the share shrink workflow.

Settings come from SHRINK_AGENT_* environment variables and the host env
file; flags given here override both.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from .config import Settings
from .logging_config import setup_logging
from .workflow import FAILURE_EXIT_CODE, INTERRUPTED_EXIT_CODE, ShrinkWorkflow

# CLI flag destination -> Settings field
_OVERRIDES = {
    "share": "network_share_path",
    "drive": "drive_letter",
    "repo_url": "repository_url",
    "cache_root": "cache_root",
    "script": "shrink_script",
    "target_subpath": "shrink_target_subpath",
    "log_path": "shrink_log_path",
    "workbook": "workbook_path",
    "persistent": "persistent_mount",
    "shrink_timeout": "shrink_timeout_seconds",
    "log_level": "log_level",
    "log_file": "log_to_file",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shrink-agent",
        description="Mount a share, run the shrink tool against it and convert its report to Excel.",
    )
    parser.add_argument("--share", help="UNC path of the network share, e.g. \\\\server\\share")
    parser.add_argument("--drive", help="Drive letter to map the share to (default Z:)")
    parser.add_argument("--repo-url", help="Git URL of the shrink tool repository")
    parser.add_argument("--cache-root", help="Directory holding the tool checkout")
    parser.add_argument("--script", help="Shrink script path relative to the checkout")
    parser.add_argument("--target-subpath", help="Folder below the mounted drive to process")
    parser.add_argument("--log-path", help="Where the shrink tool writes its CSV log")
    parser.add_argument("--workbook", help="Output .xlsx path")
    parser.add_argument(
        "--persistent",
        action=argparse.BooleanOptionalAction,
        help="Create a persistent drive mapping (default from settings)",
    )
    parser.add_argument("--shrink-timeout", type=float, help="Seconds before the shrink tool is killed")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument(
        "--log-file",
        action=argparse.BooleanOptionalAction,
        help="Also write the rotating log file; --no-log-file logs to the console only",
    )
    parser.add_argument("--env-file", help="Settings file to load instead of the host env file")
    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    overrides: dict[str, Any] = {
        field: getattr(args, dest)
        for dest, field in _OVERRIDES.items()
        if getattr(args, dest) is not None
    }
    if args.env_file:
        return Settings(_env_file=args.env_file, **overrides)
    return Settings(**overrides)


def _raise_keyboard_interrupt(signum, frame) -> None:
    raise KeyboardInterrupt(f"received signal {signum}")


def install_signal_handlers() -> None:
    """Route termination signals through KeyboardInterrupt so scoped cleanup unwinds."""
    for name in ("SIGTERM", "SIGBREAK"):
        sig = getattr(signal, name, None)
        if sig is not None:
            signal.signal(sig, _raise_keyboard_interrupt)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args)
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        return FAILURE_EXIT_CODE

    setup_logging(settings)
    config_info = settings.config_file_info
    logging.info(f"Configuration loaded from: {args.env_file or config_info['active_config_file']}")
    logging.info(f"Running on hostname: {config_info['hostname']}")

    workflow = ShrinkWorkflow(settings)
    platform_info = workflow.mount_service.get_platform_info()
    logging.info(
        f"Share: {settings.network_share_path} -> {settings.drive_letter} "
        f"(platform {platform_info['platform']}, mounter {platform_info['mounter']}, "
        f"persistent {platform_info['persistent_mount']})"
    )

    cleanup = workflow.cleanup_handler
    cleanup.register_exit_hook()
    install_signal_handlers()

    try:
        report = asyncio.run(workflow.run())
    except KeyboardInterrupt:
        logging.warning("Interrupted")
        return INTERRUPTED_EXIT_CODE
    finally:
        # An interrupted unmount stays registered so the exit hook retries it
        if cleanup.done:
            cleanup.unregister_exit_hook()

    return report.exit_code


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()

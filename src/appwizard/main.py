from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable, Sequence

from appwizard import __version__
from appwizard.cli.build import handle_build_command, register_build_parser
from appwizard.cli.config import handle_config_command, register_config_parser
from appwizard.cli.doctor import handle_doctor_command, register_doctor_parser
from appwizard.cli.infra import handle_infra_command, register_infra_parser
from appwizard.cli.order import handle_order_command, register_order_parser
from appwizard.cli.run import handle_run_command, register_run_parser
from appwizard.config.settings import get_settings
from appwizard.logging import configure_logging

HANDLERS: dict[str, Callable[[argparse.Namespace], int]] = {
    "order": handle_order_command,
    "build": handle_build_command,
    "run": handle_run_command,
    "infra": handle_infra_command,
    "config": handle_config_command,
    "doctor": handle_doctor_command,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="appwizard",
        description="Run and deploy the app template",
    )
    parser.add_argument("--version", action="version", version=f"appwizard {__version__}")
    parser.add_argument(
        "--project-dir",
        default=None,
        help="Project directory (default: APPWIZARD_PROJECT_DIR or the current directory)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    register_order_parser(subparsers)
    register_build_parser(subparsers)
    register_run_parser(subparsers)
    register_infra_parser(subparsers)
    register_config_parser(subparsers)
    register_doctor_parser(subparsers)

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    level = logging.DEBUG if args.verbose or settings.debug else settings.log_level.upper()
    configure_logging(level, json_logs=settings.log_json)

    if args.project_dir is None:
        args.project_dir = str(settings.project_dir)

    handler = HANDLERS.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(0)

    sys.exit(handler(args))


if __name__ == "__main__":
    main()

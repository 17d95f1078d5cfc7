"""
CLI command to start containers in deployment order.

Commands:
    appwizard run                  - Start prod services, waiting on healthchecks
    appwizard run --env dev        - Start dev services
    appwizard run --no-wait        - Do not wait for healthchecks
"""

from __future__ import annotations

import argparse
from pathlib import Path

from appwizard.cli.ux import header, success, warning
from appwizard.core.errors import ExitCode, main_with_error_handling
from appwizard.services.run import RunService


@main_with_error_handling()
def run_command(project_dir: str | Path = ".", env: str = "prod", wait: bool = True) -> int:
    header(f"Starting {env} containers")
    report = RunService(project_dir).run_containers(env, wait=wait)

    for service in report.started:
        success(f"{service} started")
    for message in report.warnings:
        warning(message)

    return ExitCode.WARNING if report.warnings else ExitCode.SUCCESS


def register_run_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("run", help="Start compose services in dependency order")
    parser.add_argument("--env", choices=["dev", "prod"], default="prod", help="Environment")
    parser.add_argument(
        "--no-wait",
        dest="wait",
        action="store_false",
        help="Do not wait for service healthchecks",
    )


def handle_run_command(args: argparse.Namespace) -> int:
    return run_command(project_dir=args.project_dir, env=args.env, wait=args.wait)

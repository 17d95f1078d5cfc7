"""
CLI command for compose deployment order.

Commands:
    appwizard order                     - Order of docker-compose.prod.yml
    appwizard order --env dev           - Order of docker-compose.dev.yml
    appwizard order --format json       - Output as JSON
    appwizard order --service api       - Position of one service
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from appwizard.cli.ux import console, header, info, print_table
from appwizard.compose.document import compose_file_name
from appwizard.compose.ordering import deduce_deployment_order, service_position
from appwizard.core.errors import ExitCode, main_with_error_handling


@main_with_error_handling()
def order_command(
    project_dir: str | Path = ".",
    env: str = "prod",
    compose_file: str | None = None,
    output_format: str = "table",
    service: str | None = None,
) -> int:
    """
    Print the order in which compose services are started.

    Exit codes:
        0 - Order resolved
        10 - Compose file missing or invalid
        12 - Cycle or dependency on an undeclared service
    """
    path = Path(compose_file) if compose_file else Path(project_dir) / compose_file_name(env)

    if service:
        position = service_position(path, service)
        if output_format == "json":
            console.print_json(json.dumps({"service": service, "position": position}))
        else:
            info(f"{service} starts at position {position}")
        return ExitCode.SUCCESS

    order = deduce_deployment_order(path)

    if output_format == "json":
        console.print_json(json.dumps({"compose_file": str(path), "order": order}))
        return ExitCode.SUCCESS

    header(f"Deployment order: {path.name}")
    print_table(
        "Services",
        ["#", "Service"],
        [[str(i), name] for i, name in enumerate(order, start=1)],
    )
    return ExitCode.SUCCESS


def register_order_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register order subcommand parser."""
    parser = subparsers.add_parser("order", help="Show the compose service start-up order")
    parser.add_argument("--env", choices=["dev", "prod"], default="prod", help="Environment")
    parser.add_argument("--compose-file", help="Explicit compose file path")
    parser.add_argument(
        "--format",
        dest="output_format",
        choices=["table", "json"],
        default="table",
        help="Output format",
    )
    parser.add_argument("--service", help="Only print the position of this service")


def handle_order_command(args: argparse.Namespace) -> int:
    return order_command(
        project_dir=args.project_dir,
        env=args.env,
        compose_file=args.compose_file,
        output_format=args.output_format,
        service=args.service,
    )

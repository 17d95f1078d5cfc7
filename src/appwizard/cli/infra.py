"""
CLI commands for production infrastructure.

Commands:
    appwizard infra check                          - Live state of storage, database, compute
    appwizard infra provision                      - Reconcile everything, with confirmations
    appwizard infra provision --only storage       - Reconcile selected kinds
    appwizard infra provision --yes                - Assume yes to every confirmation
"""

from __future__ import annotations

import argparse
from pathlib import Path

from appwizard.cli.ux import (
    confirm,
    header,
    is_interactive,
    password_input,
    print_table,
    spinner,
    success,
    text_input,
    warning,
)
from appwizard.config.cli_config import CliConfig
from appwizard.config.settings import get_settings
from appwizard.core.errors import ExitCode, ValidationError, main_with_error_handling
from appwizard.infra.base import InfraLayout
from appwizard.infra.credentials import Credentials
from appwizard.infra.models import ResourceKind
from appwizard.infra.reconcile import RECONCILE_ORDER, InfraReconciler
from appwizard.infra.runner import CommandRunner
from appwizard.infra.services import CloudProviderServices
from appwizard.infra.store import InfraDataStore


def parse_kinds(value: str | None) -> list[ResourceKind] | None:
    """``"storage,compute"`` -> kinds; None selects every kind."""
    if not value:
        return None
    kinds = []
    for item in value.split(","):
        item = item.strip().lower()
        if item == "db":
            item = ResourceKind.DATABASE.value
        try:
            kinds.append(ResourceKind(item))
        except ValueError as e:
            raise ValidationError(
                f"Unknown resource kind '{item}'",
                details={"supported": [k.value for k in RECONCILE_ORDER]},
            ) from e
    return kinds


def ask_db_credentials() -> tuple[str, str] | None:
    if not is_interactive():
        return None
    username = text_input("Application database user:", default="appuser")
    password = password_input("Application database password:")
    if not username or not password:
        return None
    return username, password


def _build_reconciler(project_dir: str | Path, assume_yes: bool = False) -> InfraReconciler:
    config = CliConfig.load(project_dir)
    layout = InfraLayout.for_project(project_dir)
    services = CloudProviderServices.for_config(config, layout, CommandRunner(), get_settings())
    return InfraReconciler(
        services,
        InfraDataStore(layout, services.provider),
        Credentials(layout.credentials_file),
        confirm=confirm,
        ask_db_credentials=ask_db_credentials,
        assume_yes=assume_yes,
    )


@main_with_error_handling()
def infra_check_command(project_dir: str | Path = ".") -> int:
    """
    Show whether each resource exists and is ready.

    Exit codes:
        0 - Everything ready
        1 - At least one resource is not ready
    """
    reconciler = _build_reconciler(project_dir)
    header(f"Infrastructure ({reconciler.services.provider.value})")
    with spinner("Querying live state"):
        states = reconciler.check_all()

    print_table(
        "Live state",
        ["Resource", "State"],
        [
            [kind.value, "[success]ready[/success]" if ready else "[warning]not ready[/warning]"]
            for kind, ready in states.items()
        ],
    )
    return ExitCode.SUCCESS if all(states.values()) else ExitCode.WARNING


@main_with_error_handling()
def infra_provision_command(
    project_dir: str | Path = ".",
    only: str | None = None,
    assume_yes: bool = False,
) -> int:
    kinds = parse_kinds(only)
    reconciler = _build_reconciler(project_dir, assume_yes=assume_yes)
    header(f"Provisioning ({reconciler.services.provider.value})")

    report = reconciler.reconcile_all(kinds)

    print_table(
        "Reconcile report",
        ["Resource", "Outcome"],
        [[kind.value, outcome.value] for kind, outcome in report.outcomes.items()],
    )
    for message in report.warnings:
        warning(message)
    if not report.has_warnings:
        success("Infrastructure is ready")

    return ExitCode.WARNING if report.has_warnings else ExitCode.SUCCESS


def register_infra_parser(subparsers: argparse._SubParsersAction) -> None:
    infra_parser = subparsers.add_parser("infra", help="Production infrastructure")
    infra_subparsers = infra_parser.add_subparsers(dest="infra_command")

    infra_subparsers.add_parser("check", help="Show live state of every resource")

    provision_parser = infra_subparsers.add_parser(
        "provision", help="Provision or adopt storage, database and compute"
    )
    provision_parser.add_argument(
        "--only", help="Comma-separated kinds to reconcile (storage,database,compute)"
    )
    provision_parser.add_argument(
        "--yes", "-y", dest="assume_yes", action="store_true", help="Assume yes to prompts"
    )


def handle_infra_command(args: argparse.Namespace) -> int:
    if args.infra_command == "check":
        return infra_check_command(project_dir=args.project_dir)
    if args.infra_command == "provision":
        return infra_provision_command(
            project_dir=args.project_dir, only=args.only, assume_yes=args.assume_yes
        )
    warning("Usage: appwizard infra {check,provision}")
    return ExitCode.WARNING

"""
CLI command checking local prerequisites.

Commands:
    appwizard doctor    - Check git, docker, docker-compose, terraform and the provider CLI
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path

from appwizard.cli.ux import console, header, print_table
from appwizard.config.cli_config import CliConfig, Provider
from appwizard.core.errors import ExitCode, main_with_error_handling
from appwizard.infra.runner import CommandRunner

BASE_TOOLS = ["git", "docker", "docker-compose", "terraform"]

PROVIDER_TOOLS = {
    Provider.GOOGLE_CLOUD: "gcloud",
    Provider.AWS: "aws",
}

INSTALL_HINTS = {
    "git": "https://git-scm.com/downloads",
    "docker": "https://docs.docker.com/get-docker/",
    "docker-compose": "https://docs.docker.com/compose/install/",
    "terraform": "https://developer.hashicorp.com/terraform/install",
    "gcloud": "https://cloud.google.com/sdk/docs/install",
    "aws": "https://aws.amazon.com/cli/",
}


@dataclass
class ToolCheck:
    name: str
    available: bool
    version: str = ""


def check_tools(runner: CommandRunner, tools: list[str]) -> list[ToolCheck]:
    checks = []
    for tool in tools:
        result = runner.run([tool, "--version"], timeout=15)
        first_line = (result.stdout or result.stderr).strip().splitlines()
        checks.append(ToolCheck(tool, result.ok, first_line[0] if result.ok and first_line else ""))
    return checks


def tools_for_project(project_dir: str | Path) -> list[str]:
    config = CliConfig.load(project_dir)
    tools = list(BASE_TOOLS)
    if config.provider_name is not None:
        tools.append(PROVIDER_TOOLS[config.provider_name])
    return tools


@main_with_error_handling()
def doctor_command(project_dir: str | Path = ".", runner: CommandRunner | None = None) -> int:
    """
    Exit codes:
        0 - Every tool available
        1 - At least one tool missing
    """
    runner = runner or CommandRunner()
    header("appwizard doctor")
    checks = check_tools(runner, tools_for_project(project_dir))

    print_table(
        "Prerequisites",
        ["Tool", "Status", "Version"],
        [
            [
                c.name,
                "[success]ok[/success]" if c.available else "[error]missing[/error]",
                c.version,
            ]
            for c in checks
        ],
    )

    missing = [c for c in checks if not c.available]
    for check in missing:
        console.print(f"[muted]Install {check.name}: {INSTALL_HINTS.get(check.name, '')}[/muted]")

    return ExitCode.WARNING if missing else ExitCode.SUCCESS


def register_doctor_parser(subparsers: argparse._SubParsersAction) -> None:
    subparsers.add_parser("doctor", help="Check that required tools are installed")


def handle_doctor_command(args: argparse.Namespace) -> int:
    return doctor_command(project_dir=args.project_dir)

"""
CLI command to build images in deployment order.

Commands:
    appwizard build                     - Build prod images
    appwizard build --env dev           - Build dev images
    appwizard build --no-cache          - Rebuild without the docker layer cache
    appwizard build --skip-tests        - Tell Dockerfiles not to run tests
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path

from appwizard.cli.ux import header, info, success
from appwizard.config.cli_config import CliConfig
from appwizard.core.errors import ExitCode, main_with_error_handling
from appwizard.services.build import BuildService


@main_with_error_handling()
def build_command(
    project_dir: str | Path = ".",
    env: str = "prod",
    no_cache: bool = False,
    skip_tests: bool = False,
    skip_lint: bool = False,
) -> int:
    """
    Build every service that has a build context, dependencies first.

    Test and lint switches default to the ``buildOptions`` saved in
    ``.app-template``; the flags can only turn them off.
    """
    options = CliConfig.load(project_dir).build_options
    if skip_tests:
        options = replace(options, perform_tests=False)
    if skip_lint:
        options = replace(options, perform_lint=False)

    header(f"Building {env} images")
    report = BuildService(project_dir).build_images(env, options=options, no_cache=no_cache)

    for service in report.built:
        success(f"{service} built")
    for service in report.skipped:
        info(f"{service} uses a published image")
    return ExitCode.SUCCESS


def register_build_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("build", help="Build compose images in dependency order")
    parser.add_argument("--env", choices=["dev", "prod"], default="prod", help="Environment")
    parser.add_argument("--no-cache", action="store_true", help="Do not use the docker build cache")
    parser.add_argument("--skip-tests", action="store_true", help="Build without running tests")
    parser.add_argument("--skip-lint", action="store_true", help="Build without running linters")


def handle_build_command(args: argparse.Namespace) -> int:
    return build_command(
        project_dir=args.project_dir,
        env=args.env,
        no_cache=args.no_cache,
        skip_tests=args.skip_tests,
        skip_lint=args.skip_lint,
    )

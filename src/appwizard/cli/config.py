"""
CLI commands for the project configuration file (``.app-template``).

Commands:
    appwizard config show          - Print the configuration
    appwizard config provider      - Interactively configure the cloud provider
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from appwizard.cli.ux import (
    console,
    error,
    header,
    info,
    print_key_value,
    select,
    success,
    text_input,
    warning,
)
from appwizard.config.cli_config import (
    CONFIG_FILE_NAME,
    AWSProviderConfig,
    CliConfig,
    GoogleProviderConfig,
    InfraPerformance,
    Provider,
    ProviderConfig,
)
from appwizard.config.google_regions import (
    GOOGLE_CLOUD_REGIONS,
    correct_region_input,
    is_valid_region,
    suggest_zones,
    validate_zone_input,
)
from appwizard.core.errors import ConfigurationError, ExitCode, main_with_error_handling

MAX_REGION_ATTEMPTS = 3


@main_with_error_handling()
def config_show_command(project_dir: str | Path = ".", as_json: bool = False) -> int:
    config = CliConfig.load(project_dir)

    if as_json:
        console.print_json(json.dumps(config.to_dict()))
        return ExitCode.SUCCESS

    header(f"Configuration ({CONFIG_FILE_NAME})")
    print_key_value({"Project": config.project_name}, title="Project")

    if config.provider is None:
        warning("No cloud provider configured")
        info("Run: appwizard config provider")
        return ExitCode.SUCCESS

    print_key_value(
        {key: str(value) for key, value in config.provider.to_dict().items()},
        title="Provider",
    )
    missing = config.provider.missing_fields()
    if missing:
        warning(f"Missing required fields: {', '.join(missing)}")
        return ExitCode.WARNING
    return ExitCode.SUCCESS


def prompt_google_provider(current: GoogleProviderConfig | None) -> GoogleProviderConfig:
    """Ask for Google Cloud settings; a zone typed as region is corrected."""
    current = current or GoogleProviderConfig()

    region = ""
    for _ in range(MAX_REGION_ATTEMPTS):
        entered = text_input(
            f"Region ({', '.join(GOOGLE_CLOUD_REGIONS[:3])}, ...):", default=current.region
        )
        region = correct_region_input(entered)
        if is_valid_region(region):
            if region != entered.strip().lower():
                info(f"'{entered}' is a zone, using region {region}")
            break
        error(f"Unknown Google Cloud region '{entered}'")
    else:
        raise ConfigurationError(
            "No valid Google Cloud region given", details={"regions": GOOGLE_CLOUD_REGIONS}
        )

    zones = suggest_zones(region)
    default_zone = current.zone if current.zone in zones else (zones[0] if zones else "")
    zone = validate_zone_input(select("Zone:", zones, default=default_zone)) if zones else ""

    performance = select(
        "Performance tier:",
        [p.value for p in InfraPerformance],
        default=current.performance.value,
    )
    return GoogleProviderConfig(
        artifact_registry=text_input("Artifact registry:", default=current.artifact_registry),
        performance=InfraPerformance(performance),
        filestore_export_path=text_input(
            "Filestore export path:", default=current.filestore_export_path
        ),
        mount_options=text_input("NFS mount options:", default=current.mount_options),
        region=region,
        zone=zone,
    )


def prompt_aws_provider(current: AWSProviderConfig | None) -> AWSProviderConfig:
    current = current or AWSProviderConfig()
    performance = select(
        "Performance tier:",
        [p.value for p in InfraPerformance],
        default=current.performance.value,
    )
    groups = text_input(
        "Security groups (comma-separated):", default=",".join(current.security_groups)
    )
    return AWSProviderConfig(
        artifact_registry=text_input("Artifact registry (ECR):", default=current.artifact_registry),
        performance=InfraPerformance(performance),
        filestore_export_path=text_input("EFS export path:", default=current.filestore_export_path),
        mount_options=text_input("NFS mount options:", default=current.mount_options),
        region=text_input("Region:", default=current.region or "eu-west-1"),
        subnet_id=text_input("Subnet id:", default=current.subnet_id),
        security_groups=[g.strip() for g in groups.split(",") if g.strip()],
        compute_key_name=text_input("EC2 key pair name:", default=current.compute_key_name),
        compute_public_key_path=text_input(
            "Public key path:", default=current.compute_public_key_path
        ),
    )


@main_with_error_handling()
def config_provider_command(project_dir: str | Path = ".", provider: str | None = None) -> int:
    config = CliConfig.load(project_dir)
    header("Cloud provider")

    name = provider or select(
        "Provider:",
        [p.value for p in Provider],
        default=config.provider_name.value if config.provider_name else None,
    )
    current: ProviderConfig | None = (
        config.provider if config.provider and config.provider.name.value == name else None
    )

    if name == Provider.GOOGLE_CLOUD.value:
        # The project name doubles as the Google Cloud project id
        config.project_name = text_input("Google Cloud project id:", default=config.project_name)
        config.provider = prompt_google_provider(current)  # type: ignore[arg-type]
    else:
        config.provider = prompt_aws_provider(current)  # type: ignore[arg-type]

    path = config.save(project_dir)
    success(f"Saved {path}")

    missing = config.provider.missing_fields()
    if missing:
        warning(f"Missing required fields: {', '.join(missing)}")
        return ExitCode.WARNING
    return ExitCode.SUCCESS


def register_config_parser(subparsers: argparse._SubParsersAction) -> None:
    config_parser = subparsers.add_parser("config", help="Project configuration")
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    show_parser = config_subparsers.add_parser("show", help="Show current configuration")
    show_parser.add_argument("--json", dest="as_json", action="store_true", help="Output as JSON")

    provider_parser = config_subparsers.add_parser(
        "provider", help="Configure the cloud provider interactively"
    )
    provider_parser.add_argument(
        "--provider", choices=[p.value for p in Provider], help="Skip the provider question"
    )


def handle_config_command(args: argparse.Namespace) -> int:
    if args.config_command == "show":
        return config_show_command(project_dir=args.project_dir, as_json=args.as_json)
    if args.config_command == "provider":
        return config_provider_command(project_dir=args.project_dir, provider=args.provider)
    warning("Usage: appwizard config {show,provider}")
    return ExitCode.WARNING

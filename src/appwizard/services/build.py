"""Build compose service images one by one in deployment order."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from appwizard.compose.document import compose_file_name, load_compose, service_build_context
from appwizard.compose.ordering import resolve_deployment_order, services_from_compose
from appwizard.config.cli_config import BuildOptions
from appwizard.core.errors import ConfigurationError, ProvisioningError
from appwizard.infra.runner import CommandRunner

logger = structlog.get_logger()


@dataclass
class BuildReport:
    built: list[str] = field(default_factory=list)
    # Services that only pull a published image
    skipped: list[str] = field(default_factory=list)


def build_args(options: BuildOptions) -> list[str]:
    """``--build-arg`` flags telling the Dockerfiles whether to test and lint."""
    flags = {
        "PERFORM_TESTS": options.perform_tests,
        "PERFORM_LINT": options.perform_lint,
    }
    args: list[str] = []
    for name, enabled in flags.items():
        args += ["--build-arg", f"{name}={'true' if enabled else 'false'}"]
    return args


class BuildService:
    """Runs ``docker-compose build <service>`` for each service in order."""

    def __init__(self, project_dir: str | Path, runner: CommandRunner | None = None):
        self.project_dir = Path(project_dir)
        self.runner = runner or CommandRunner()

    def build_context(self, document: dict[str, Any], service: str) -> Path | None:
        """
        Directory the service image is built from.

        A service with no ``build`` key is built from ``containers/<service>``
        when that directory exists; otherwise it is image-only and None is
        returned.
        """
        context = service_build_context(document, service, self.project_dir)
        declared = "build" in (document["services"][service] or {})
        if context.is_dir():
            return context
        if declared:
            raise ConfigurationError(
                f"Build context for '{service}' does not exist",
                details={"context": str(context)},
            )
        return None

    def build_images(
        self,
        env: str = "prod",
        options: BuildOptions | None = None,
        no_cache: bool = False,
    ) -> BuildReport:
        """
        Build every buildable service of the environment's compose file in order.

        Raises:
            CycleOrMissingDependencyError: if the order cannot be resolved
            ConfigurationError: if a declared build context is missing
            ProvisioningError: if ``docker-compose build`` fails for a service
        """
        options = options or BuildOptions()
        compose_file = self.project_dir / compose_file_name(env)
        document = load_compose(compose_file)
        order = resolve_deployment_order(services_from_compose(document))
        report = BuildReport()

        for position, service in enumerate(order, start=1):
            context = self.build_context(document, service)
            if context is None:
                logger.debug("service_image_only", service=service)
                report.skipped.append(service)
                continue

            logger.info("service_building", service=service, position=position, context=str(context))
            argv = ["docker-compose", "-f", str(compose_file), "build"]
            if no_cache:
                argv.append("--no-cache")
            argv += build_args(options)
            argv.append(service)

            result = self.runner.run(argv, cwd=self.project_dir)
            if not result.ok:
                raise ProvisioningError(
                    f"Failed to build service '{service}'",
                    stderr=result.stderr,
                    details={"compose_file": str(compose_file), "context": str(context)},
                )
            report.built.append(service)

        return report

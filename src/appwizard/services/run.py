"""Start compose services one by one in deployment order."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path

import structlog
from tenacity import RetryError, Retrying, retry_if_result, stop_after_delay, wait_fixed

from appwizard.compose.document import compose_file_name, load_compose, service_healthcheck
from appwizard.compose.ordering import resolve_deployment_order, services_from_compose
from appwizard.config.settings import Settings, get_settings
from appwizard.core.errors import ProvisioningError
from appwizard.infra.runner import CommandRunner

logger = structlog.get_logger()

HEALTHY = "healthy"
UNHEALTHY = "unhealthy"


@dataclass
class RunReport:
    started: list[str] = field(default_factory=list)
    healthy: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class RunService:
    """Runs ``docker-compose up -d <service>`` for each service in order."""

    def __init__(
        self,
        project_dir: str | Path,
        runner: CommandRunner | None = None,
        settings: Settings | None = None,
    ):
        self.project_dir = Path(project_dir)
        self.runner = runner or CommandRunner()
        self.settings = settings or get_settings()
        self.sleep = time.sleep

    def _compose(self, compose_file: Path, *args: str):
        return self.runner.run(
            ["docker-compose", "-f", str(compose_file), *args], cwd=self.project_dir
        )

    def health_status(self, compose_file: Path, service: str) -> str | None:
        ps = self._compose(compose_file, "ps", "-q", service)
        container = ps.stdout.strip().splitlines()[0] if ps.ok and ps.stdout.strip() else ""
        if not container:
            return None
        inspect = self.runner.run(
            ["docker", "inspect", "--format", "{{.State.Health.Status}}", container]
        )
        return inspect.stdout.strip() if inspect.ok else None

    def wait_until_healthy(self, compose_file: Path, service: str) -> bool:
        """Poll the container health until healthy, unhealthy or the deadline passes."""
        retryer = Retrying(
            stop=stop_after_delay(self.settings.healthcheck_deadline_seconds),
            wait=wait_fixed(self.settings.healthcheck_interval_seconds),
            retry=retry_if_result(lambda status: status not in (HEALTHY, UNHEALTHY)),
            sleep=self.sleep,
        )
        try:
            status = retryer(self.health_status, compose_file, service)
        except RetryError:
            return False
        return status == HEALTHY

    def run_containers(self, env: str = "prod", wait: bool = True) -> RunReport:
        """
        Start every service of the environment's compose file in order.

        Raises:
            CycleOrMissingDependencyError: if the order cannot be resolved
            ProvisioningError: if ``docker-compose up`` fails for a service
        """
        compose_file = self.project_dir / compose_file_name(env)
        document = load_compose(compose_file)
        order = resolve_deployment_order(services_from_compose(document))
        report = RunReport()

        for service in order:
            logger.info("service_starting", service=service, env=env)
            result = self._compose(compose_file, "up", "-d", service)
            if not result.ok:
                raise ProvisioningError(
                    f"Failed to start service '{service}'",
                    stderr=result.stderr,
                    details={"compose_file": str(compose_file)},
                )
            report.started.append(service)

            if not wait or service_healthcheck(document, service) is None:
                continue
            if self.wait_until_healthy(compose_file, service):
                report.healthy.append(service)
            else:
                message = f"Service '{service}' did not become healthy"
                logger.warning("service_not_healthy", service=service)
                report.warnings.append(message)

        return report

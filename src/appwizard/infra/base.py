from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from appwizard.compose.document import compose_file_name
from appwizard.compose.volumes import VolumeDriverDiscrepancy
from appwizard.config.cli_config import CliConfig, Provider, ProviderConfig
from appwizard.core.errors import ConfigurationError
from appwizard.infra.models import (
    ComputeInfraData,
    DBInfraData,
    ResourceKind,
    StorageInfraData,
)

# Terraform module directory names under infra/<provider>/
MODULE_DIRS = {
    ResourceKind.STORAGE: "storage",
    ResourceKind.DATABASE: "db",
    ResourceKind.COMPUTE: "compute",
}

PROVIDER_DIRS = {
    Provider.GOOGLE_CLOUD: "google",
    Provider.AWS: "aws",
}


def require_provider(config: CliConfig, provider: Provider, adapter: str) -> ProviderConfig:
    """Return the provider section, refusing a config for another provider."""
    if config.provider is None or config.provider.name is not provider:
        raise ConfigurationError(
            f"{adapter} only supports provider '{provider.value}'",
            details={"configured": str(config.provider_name) if config.provider else None},
        )
    return config.provider


@dataclass(frozen=True)
class InfraLayout:
    """Every file location used while provisioning, relative to one project."""

    project_dir: Path

    @classmethod
    def for_project(cls, project_dir: str | Path) -> InfraLayout:
        return cls(Path(project_dir).resolve())

    def module_dir(self, provider: Provider, kind: ResourceKind) -> Path:
        return self.project_dir / "infra" / PROVIDER_DIRS[provider] / MODULE_DIRS[kind]

    def tfvars_path(self, provider: Provider, kind: ResourceKind) -> Path:
        return self.module_dir(provider, kind) / "terraform.tfvars.json"

    def infra_data_dir(self, provider: Provider) -> Path:
        return self.project_dir / "prod-deployments" / "infra" / provider.value

    def infra_data_path(self, provider: Provider, kind: ResourceKind) -> Path:
        return self.infra_data_dir(provider) / f"{kind.value}.json"

    @property
    def prod_compose_file(self) -> Path:
        return self.project_dir / compose_file_name("prod")

    @property
    def credentials_file(self) -> Path:
        return self.project_dir / ".env.prod"


class StorageReconciler(Protocol):
    """Contract for network filesystem adapters (Filestore, EFS)."""

    def generate_declarative_config(self) -> None:
        ...

    def check_live_state(self) -> bool:
        ...

    def provision_and_fetch(self) -> StorageInfraData:
        ...

    def fetch_existing_data(self) -> StorageInfraData:
        ...

    def check_compose_driver_drift(self, data: StorageInfraData) -> list[VolumeDriverDiscrepancy]:
        ...

    def fix_compose_driver_drift(self, data: StorageInfraData) -> None:
        ...

    def probe_mount(self, data: StorageInfraData) -> bool:
        ...


class DatabaseReconciler(Protocol):
    """Contract for managed Postgres adapters (Cloud SQL, RDS)."""

    def generate_declarative_config(self) -> None:
        ...

    def check_live_state(self) -> bool:
        ...

    def provision_and_fetch(self) -> DBInfraData:
        ...

    def fetch_existing_data(self) -> DBInfraData:
        ...

    def check_user_exists(self, data: DBInfraData) -> bool:
        ...

    def create_user(self, data: DBInfraData) -> None:
        ...


class ComputeReconciler(Protocol):
    """Contract for VM adapters (Compute Engine, EC2)."""

    def generate_declarative_config(self) -> None:
        ...

    def check_live_state(self) -> bool:
        ...

    def provision_and_fetch(self) -> ComputeInfraData:
        ...

    def fetch_existing_data(self) -> ComputeInfraData:
        ...

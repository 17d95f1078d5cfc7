"""
Project configuration stored in ``.app-template``.

The file is JSON and keeps the camelCase keys written by earlier releases
of the CLI. Provider configuration comes in two variants, Google Cloud and
AWS, each with its own mandatory fields.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

import structlog

from appwizard.core.errors import ConfigurationError

logger = structlog.get_logger()

CONFIG_FILE_NAME = ".app-template"


class Provider(StrEnum):
    """Supported cloud providers."""

    GOOGLE_CLOUD = "google_cloud"
    AWS = "aws"


class InfraPerformance(StrEnum):
    """Infrastructure sizing tier."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class ProviderConfig:
    """Settings shared by every provider."""

    name: Provider
    artifact_registry: str = ""
    performance: InfraPerformance = InfraPerformance.LOW
    filestore_export_path: str = "/"
    mount_options: str = ""

    # Mandatory per-provider fields, checked by ``missing_fields``
    required_fields: tuple[str, ...] = field(default=(), init=False, repr=False)

    def require(self, field_name: str) -> Any:
        """Return a mandatory field or fail naming it."""
        value = getattr(self, field_name, None)
        if value is None or value == "" or value == []:
            raise ConfigurationError(
                f"Missing required configuration field '{field_name}'",
                details={"provider": str(self.name), "field": field_name},
            )
        return value

    def missing_fields(self) -> list[str]:
        return [
            name
            for name in self.required_fields
            if getattr(self, name, None) in (None, "", [])
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": str(self.name),
            "artifactRegistry": self.artifact_registry,
            "performance": str(self.performance),
            "filestoreExportPath": self.filestore_export_path,
            "mountOptions": self.mount_options,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderConfig:
        try:
            name = Provider(data.get("name", ""))
        except ValueError as e:
            raise ConfigurationError(
                f"Unsupported provider '{data.get('name')}'",
                details={"supported": [p.value for p in Provider]},
            ) from e

        if name is Provider.GOOGLE_CLOUD:
            return GoogleProviderConfig.from_dict(data)
        return AWSProviderConfig.from_dict(data)


def _performance(value: str | None) -> InfraPerformance:
    try:
        return InfraPerformance(value or InfraPerformance.LOW)
    except ValueError:
        logger.warning("unknown_performance_tier", value=value)
        return InfraPerformance.LOW


@dataclass
class GoogleProviderConfig(ProviderConfig):
    """Google Cloud variant: Filestore, Cloud SQL and Compute Engine."""

    name: Provider = Provider.GOOGLE_CLOUD
    region: str = ""
    zone: str = ""
    mount_options: str = "nolock,hard,timeo=600"

    def __post_init__(self) -> None:
        self.required_fields = ("region", "zone", "filestore_export_path", "mount_options")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({"region": self.region, "zone": self.zone})
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GoogleProviderConfig:
        return cls(
            artifact_registry=data.get("artifactRegistry", ""),
            performance=_performance(data.get("performance")),
            filestore_export_path=data.get("filestoreExportPath", "/"),
            mount_options=data.get("mountOptions", "nolock,hard,timeo=600"),
            region=data.get("region", ""),
            zone=data.get("zone", ""),
        )


@dataclass
class AWSProviderConfig(ProviderConfig):
    """AWS variant: EFS, RDS and EC2."""

    name: Provider = Provider.AWS
    region: str = ""
    subnet_id: str = ""
    security_groups: list[str] = field(default_factory=list)
    mount_options: str = "rw,nosuid,hard,timeo=600"
    compute_key_name: str = ""
    compute_public_key_path: str = ""

    def __post_init__(self) -> None:
        self.required_fields = (
            "region",
            "subnet_id",
            "security_groups",
            "filestore_export_path",
            "mount_options",
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "region": self.region,
                "subnetId": self.subnet_id,
                "securityGroups": list(self.security_groups),
                "computeKeyName": self.compute_key_name,
                "computePublicKeyPath": self.compute_public_key_path,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AWSProviderConfig:
        groups = data.get("securityGroups") or []
        if isinstance(groups, str):
            groups = [g.strip() for g in groups.split(",") if g.strip()]
        return cls(
            artifact_registry=data.get("artifactRegistry", ""),
            performance=_performance(data.get("performance")),
            filestore_export_path=data.get("filestoreExportPath", "/"),
            mount_options=data.get("mountOptions", "rw,nosuid,hard,timeo=600"),
            region=data.get("region", ""),
            subnet_id=data.get("subnetId", ""),
            security_groups=list(groups),
            compute_key_name=data.get("computeKeyName", ""),
            compute_public_key_path=data.get("computePublicKeyPath", ""),
        )


@dataclass
class BuildOptions:
    """Options for the build command."""

    perform_tests: bool = True
    perform_lint: bool = True
    hot_frontend: bool = False
    open_window: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "performTests": self.perform_tests,
            "performLint": self.perform_lint,
            "hotFrontend": self.hot_frontend,
            "openWindow": self.open_window,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BuildOptions:
        return cls(
            perform_tests=data.get("performTests", True),
            perform_lint=data.get("performLint", True),
            hot_frontend=data.get("hotFrontend", False),
            open_window=data.get("openWindow", False),
        )


@dataclass
class CliConfig:
    """Per-project CLI configuration."""

    project_name: str = "app-template"
    provider: ProviderConfig | None = None
    build_options: BuildOptions = field(default_factory=BuildOptions)
    path_to_ssh_key: str | None = None

    @property
    def provider_name(self) -> Provider | None:
        return self.provider.name if self.provider else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"projectName": self.project_name}
        if self.provider is not None:
            data["provider"] = self.provider.to_dict()
        data["buildOptions"] = self.build_options.to_dict()
        if self.path_to_ssh_key:
            data["pathToSSHKey"] = self.path_to_ssh_key
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CliConfig:
        provider_data = data.get("provider")
        return cls(
            project_name=data.get("projectName", "app-template"),
            provider=ProviderConfig.from_dict(provider_data) if provider_data else None,
            build_options=BuildOptions.from_dict(data.get("buildOptions", {})),
            path_to_ssh_key=data.get("pathToSSHKey"),
        )

    @classmethod
    def load(cls, project_dir: str | Path) -> CliConfig:
        """
        Load ``.app-template`` from the project directory.

        Returns the default configuration when the file does not exist.
        A file that cannot be parsed is a configuration error.
        """
        path = Path(project_dir) / CONFIG_FILE_NAME
        if not path.exists():
            logger.debug("config_not_found", path=str(path))
            return cls()

        try:
            data = json.loads(path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Cannot parse {CONFIG_FILE_NAME}: {e}", details={"path": str(path)}
            ) from e

        logger.debug("loaded_config", path=str(path))
        return cls.from_dict(data)

    def save(self, project_dir: str | Path) -> Path:
        """Save configuration to ``.app-template`` and return its path."""
        path = Path(project_dir) / CONFIG_FILE_NAME
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2) + "\n", encoding="utf-8")
        logger.info("saved_config", path=str(path))
        return path

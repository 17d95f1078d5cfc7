"""Compute Engine VM ``app-vm`` that mounts the Filestore share."""

from __future__ import annotations

from pathlib import Path

import structlog

from appwizard.config.cli_config import CliConfig, GoogleProviderConfig, Provider
from appwizard.config.settings import Settings, get_settings
from appwizard.core.errors import ConfigurationError, ProvisioningError
from appwizard.infra.base import InfraLayout, require_provider
from appwizard.infra.google import gcloud
from appwizard.infra.models import ApplyFailure, ComputeInfraData, ResourceKind, StorageInfraData
from appwizard.infra.runner import CommandRunner
from appwizard.infra.store import InfraDataStore
from appwizard.infra.terraform import Terraform, classify_by_signatures, write_tfvars

logger = structlog.get_logger()

INSTANCE_NAME = "app-vm"
SSH_USER = "ubuntu"
COMPUTE_API = "compute.googleapis.com"
READY_STATE = "RUNNING"

CONFLICT_SIGNATURES = ("alreadyExists", "already exists")


def classify_apply_failure(output: str) -> ApplyFailure:
    return classify_by_signatures(output, CONFLICT_SIGNATURES)


class GoogleComputeService:
    kind = ResourceKind.COMPUTE

    def __init__(
        self,
        config: CliConfig,
        layout: InfraLayout,
        runner: CommandRunner | None = None,
        settings: Settings | None = None,
    ):
        self.provider: GoogleProviderConfig = require_provider(  # type: ignore[assignment]
            config, Provider.GOOGLE_CLOUD, "GoogleComputeService"
        )
        self.config = config
        self.layout = layout
        self.runner = runner or CommandRunner()
        self.settings = settings or get_settings()
        self.module_dir = layout.module_dir(Provider.GOOGLE_CLOUD, self.kind)
        self.terraform = Terraform(self.module_dir, self.runner)
        self.store = InfraDataStore(layout, Provider.GOOGLE_CLOUD)

    @property
    def project_id(self) -> str:
        return self.config.project_name

    def generate_declarative_config(self) -> None:
        storage = self.store.load(ResourceKind.STORAGE, StorageInfraData)
        if not storage.filestore_ip:
            raise ConfigurationError(
                "filestoreIp is missing from storage.json",
                details={"path": str(self.store.path(ResourceKind.STORAGE))},
            )
        write_tfvars(
            self.module_dir,
            {
                "project_id": self.project_id,
                "region": self.provider.require("region"),
                "zone": self.provider.require("zone"),
                "filestore_ip": storage.filestore_ip,
                "filestore_export_path": self.provider.require("filestore_export_path"),
            },
        )

    def check_live_state(self) -> bool:
        if not gcloud.ensure_authenticated(self.runner, self.settings):
            return False

        instance = gcloud.describe(
            self.runner,
            ["compute", "instances", "describe", INSTANCE_NAME, f"--zone={self.provider.zone}"],
            self.project_id,
            api=COMPUTE_API,
        )
        status = (instance or {}).get("status")
        logger.info("vm_state", instance=INSTANCE_NAME, state=status)
        return status == READY_STATE

    def _resolve_imports(self) -> list[tuple[str, str]]:
        return [
            (
                "google_compute_instance.vm",
                f"projects/{self.project_id}/zones/{self.provider.zone}/instances/{INSTANCE_NAME}",
            )
        ]

    def _ssh_key_path(self) -> str:
        return self.config.path_to_ssh_key or str(Path.home() / ".ssh" / "id_rsa")

    def _data_from_outputs(self, outputs: dict) -> ComputeInfraData:
        ip = outputs.get("public_ip")
        if not ip:
            raise ProvisioningError(
                "terraform output 'public_ip' is missing",
                details={"module": str(self.module_dir)},
            )
        return ComputeInfraData(
            public_ip=ip,
            instance_name=outputs.get("instance_name") or INSTANCE_NAME,
            ssh_user=SSH_USER,
            ssh_key_path=self._ssh_key_path(),
            provider=Provider.GOOGLE_CLOUD,
        )

    def provision_and_fetch(self) -> ComputeInfraData:
        outputs = self.terraform.apply_with_import(classify_apply_failure, self._resolve_imports)
        data = self._data_from_outputs(outputs)
        self.store.save(self.kind, data)
        logger.info("vm_ready", ip=data.public_ip)
        return data

    def fetch_existing_data(self) -> ComputeInfraData:
        self.terraform.init()
        return self._data_from_outputs(self.terraform.output())

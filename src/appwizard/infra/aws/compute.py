"""EC2 instance tagged ``Name=app-vm`` that mounts the EFS share."""

from __future__ import annotations

from pathlib import Path

import structlog

from appwizard.config.cli_config import AWSProviderConfig, CliConfig, Provider
from appwizard.config.settings import Settings, get_settings
from appwizard.core.errors import ConfigurationError, ProvisioningError
from appwizard.infra.aws.awscli import AWSCli
from appwizard.infra.base import InfraLayout, require_provider
from appwizard.infra.models import ApplyFailure, ComputeInfraData, ResourceKind, StorageInfraData
from appwizard.infra.runner import CommandRunner
from appwizard.infra.store import InfraDataStore
from appwizard.infra.terraform import Terraform, classify_by_signatures, write_tfvars

logger = structlog.get_logger()

INSTANCE_TAG = "app-vm"
SSH_USER = "ec2-user"
MOUNT_POINT = "/mnt/app-data"
READY_STATE = "running"
DEFAULT_KEY_NAME = "app-key"

CONFLICT_SIGNATURES = ("InvalidKeyPair.Duplicate", "already exists")


def classify_apply_failure(output: str) -> ApplyFailure:
    return classify_by_signatures(output, CONFLICT_SIGNATURES)


class AWSComputeService:
    kind = ResourceKind.COMPUTE

    def __init__(
        self,
        config: CliConfig,
        layout: InfraLayout,
        runner: CommandRunner | None = None,
        settings: Settings | None = None,
    ):
        self.provider: AWSProviderConfig = require_provider(  # type: ignore[assignment]
            config, Provider.AWS, "AWSComputeService"
        )
        self.config = config
        self.layout = layout
        self.runner = runner or CommandRunner()
        self.settings = settings or get_settings()
        self.aws = AWSCli(self.runner, self.settings, self.provider.region)
        self.module_dir = layout.module_dir(Provider.AWS, self.kind)
        self.terraform = Terraform(self.module_dir, self.runner)
        self.store = InfraDataStore(layout, Provider.AWS)

    @property
    def key_name(self) -> str:
        return self.provider.compute_key_name or DEFAULT_KEY_NAME

    @property
    def public_key_path(self) -> str:
        return self.provider.compute_public_key_path or str(Path.home() / ".ssh" / "id_rsa.pub")

    def generate_declarative_config(self) -> None:
        storage = self.store.load(ResourceKind.STORAGE, StorageInfraData)
        if not storage.efs_mount_target_ip:
            raise ConfigurationError(
                "efsMountTargetIp is missing from storage.json",
                details={"path": str(self.store.path(ResourceKind.STORAGE))},
            )
        write_tfvars(
            self.module_dir,
            {
                "region": self.provider.require("region"),
                "compute_key_name": self.key_name,
                "compute_public_key_path": self.public_key_path,
                "subnet_id": self.provider.require("subnet_id"),
                "security_groups": self.provider.require("security_groups"),
                "efs_mount_target_ip": storage.efs_mount_target_ip,
                "filestore_export_path": self.provider.require("filestore_export_path"),
                "mount_point": MOUNT_POINT,
            },
        )

    def check_live_state(self) -> bool:
        if not self.provider.region:
            logger.warning("aws_region_missing")
            return False
        if not self.aws.ensure_authenticated():
            return False

        state = self.aws.text(
            "ec2", "describe-instances",
            "--filters", f"Name=tag:Name,Values={INSTANCE_TAG}",
            "Name=instance-state-name,Values=pending,running",
            "--query", "Reservations[0].Instances[0].State.Name",
        )
        logger.info("ec2_state", instance=INSTANCE_TAG, state=state)
        return state == READY_STATE

    def _resolve_imports(self) -> list[tuple[str, str]]:
        result = self.aws.run("ec2", "describe-key-pairs", "--key-names", self.key_name)
        return [("aws_key_pair.key", self.key_name)] if result.ok else []

    def _data_from_outputs(self, outputs: dict) -> ComputeInfraData:
        ip = outputs.get("public_ip")
        if not ip:
            raise ProvisioningError(
                "terraform output 'public_ip' is missing",
                details={"module": str(self.module_dir)},
            )
        return ComputeInfraData(
            public_ip=ip,
            instance_name=outputs.get("instance_name") or INSTANCE_TAG,
            ssh_user=SSH_USER,
            ssh_key_path=self.config.path_to_ssh_key or str(Path.home() / ".ssh" / "id_rsa.pem"),
            provider=Provider.AWS,
        )

    def provision_and_fetch(self) -> ComputeInfraData:
        outputs = self.terraform.apply_with_import(classify_apply_failure, self._resolve_imports)
        data = self._data_from_outputs(outputs)
        self.store.save(self.kind, data)
        logger.info("ec2_ready", ip=data.public_ip, instance=data.instance_name)
        return data

    def fetch_existing_data(self) -> ComputeInfraData:
        self.terraform.init()
        return self._data_from_outputs(self.terraform.output())

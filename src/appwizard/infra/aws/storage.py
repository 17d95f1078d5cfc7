"""AWS EFS as the NFS backing store for compose volumes."""

from __future__ import annotations

import structlog

from appwizard.compose.document import load_compose, save_compose
from appwizard.compose.volumes import (
    VolumeDriverDiscrepancy,
    apply_driver_fix,
    expected_nfs_volume,
    find_driver_drift,
    probe_nfs_mount,
)
from appwizard.config.cli_config import AWSProviderConfig, CliConfig, Provider
from appwizard.config.settings import Settings, get_settings
from appwizard.core.errors import ProvisioningError
from appwizard.infra.aws.awscli import AWSCli
from appwizard.infra.base import InfraLayout, require_provider
from appwizard.infra.models import ApplyFailure, ResourceKind, StorageInfraData
from appwizard.infra.runner import CommandRunner
from appwizard.infra.store import InfraDataStore
from appwizard.infra.terraform import Terraform, classify_by_signatures, write_tfvars

logger = structlog.get_logger()

EFS_CREATION_TOKEN = "efs-sandbox"
READY_STATE = "available"

CONFLICT_SIGNATURES = (
    "already exists",
    "creation token already used",
    "FileSystemAlreadyExists",
)


def classify_apply_failure(output: str) -> ApplyFailure:
    return classify_by_signatures(output, CONFLICT_SIGNATURES)


class AWSStorageService:
    """EFS file system identified by its creation token."""

    kind = ResourceKind.STORAGE

    def __init__(
        self,
        config: CliConfig,
        layout: InfraLayout,
        runner: CommandRunner | None = None,
        settings: Settings | None = None,
    ):
        self.provider: AWSProviderConfig = require_provider(  # type: ignore[assignment]
            config, Provider.AWS, "AWSStorageService"
        )
        self.layout = layout
        self.runner = runner or CommandRunner()
        self.settings = settings or get_settings()
        self.aws = AWSCli(self.runner, self.settings, self.provider.region)
        self.module_dir = layout.module_dir(Provider.AWS, self.kind)
        self.terraform = Terraform(self.module_dir, self.runner)
        self.store = InfraDataStore(layout, Provider.AWS)

    def generate_declarative_config(self) -> None:
        write_tfvars(
            self.module_dir,
            {
                "region": self.provider.require("region"),
                "efs_name": EFS_CREATION_TOKEN,
                "subnet_id": self.provider.require("subnet_id"),
                "security_groups": self.provider.require("security_groups"),
            },
        )

    def check_live_state(self) -> bool:
        if not self.provider.region:
            logger.warning("aws_region_missing")
            return False
        if not self.aws.ensure_authenticated():
            return False

        answer = self.aws.json(
            "efs", "describe-file-systems", "--creation-token", EFS_CREATION_TOKEN
        )
        file_systems = (answer or {}).get("FileSystems") or []
        state = file_systems[0].get("LifeCycleState") if file_systems else None
        logger.info("efs_state", creation_token=EFS_CREATION_TOKEN, state=state)
        return state == READY_STATE

    def _file_system_id(self) -> str | None:
        return self.aws.text(
            "efs", "describe-file-systems",
            "--creation-token", EFS_CREATION_TOKEN,
            "--query", "FileSystems[0].FileSystemId",
        )

    def _resolve_imports(self) -> list[tuple[str, str]]:
        fs_id = self._file_system_id()
        return [("aws_efs_file_system.efs", fs_id)] if fs_id else []

    def _data_from_outputs(self, outputs: dict) -> StorageInfraData:
        ip = outputs.get("efs_mount_target_ip")
        if not ip:
            raise ProvisioningError(
                "terraform output 'efs_mount_target_ip' is missing",
                details={"module": str(self.module_dir)},
            )
        return StorageInfraData(
            efs_mount_target_ip=ip, file_system_id=outputs.get("efs_id"), provider=Provider.AWS
        )

    def provision_and_fetch(self) -> StorageInfraData:
        outputs = self.terraform.apply_with_import(classify_apply_failure, self._resolve_imports)
        data = self._data_from_outputs(outputs)
        self.store.save(self.kind, data)
        logger.info("efs_ready", ip=data.efs_mount_target_ip)
        return data

    def fetch_existing_data(self) -> StorageInfraData:
        self.terraform.init()
        return self._data_from_outputs(self.terraform.output())

    def _expected_volume(self, data: StorageInfraData) -> dict:
        if not data.efs_mount_target_ip:
            raise ProvisioningError("EFS mount target IP is missing from the storage data")
        return expected_nfs_volume(
            data.efs_mount_target_ip,
            self.provider.mount_options,
            self.provider.filestore_export_path,
        )

    def check_compose_driver_drift(self, data: StorageInfraData) -> list[VolumeDriverDiscrepancy]:
        document = load_compose(self.layout.prod_compose_file)
        return find_driver_drift(document, self._expected_volume(data))

    def fix_compose_driver_drift(self, data: StorageInfraData) -> None:
        path = self.layout.prod_compose_file
        document = load_compose(path)
        changed = apply_driver_fix(document, self._expected_volume(data))
        if changed:
            save_compose(path, document)
            logger.info("compose_volumes_fixed", path=str(path), volumes=changed)
        else:
            logger.info("compose_volumes_up_to_date", path=str(path))

    def probe_mount(self, data: StorageInfraData) -> bool:
        if not data.efs_mount_target_ip:
            return False
        return probe_nfs_mount(
            self.runner,
            data.efs_mount_target_ip,
            self.provider.mount_options,
            self.provider.filestore_export_path,
            image=self.settings.probe_image,
            timeout=self.settings.probe_timeout_seconds,
        )

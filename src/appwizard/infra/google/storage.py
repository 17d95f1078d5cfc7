"""Google Filestore as the NFS backing store for compose volumes."""

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
from appwizard.config.cli_config import CliConfig, GoogleProviderConfig, Provider
from appwizard.config.settings import Settings, get_settings
from appwizard.core.errors import ProvisioningError
from appwizard.infra.base import InfraLayout, require_provider
from appwizard.infra.google import gcloud
from appwizard.infra.models import ApplyFailure, ResourceKind, StorageInfraData
from appwizard.infra.runner import CommandRunner
from appwizard.infra.store import InfraDataStore
from appwizard.infra.terraform import Terraform, classify_by_signatures, write_tfvars

logger = structlog.get_logger()

FILESTORE_NAME = "app-filestore"
FILESTORE_CAPACITY_GB = 1024
FILESTORE_API = "file.googleapis.com"
READY_STATE = "READY"

CONFLICT_SIGNATURES = ("already exists", "alreadyExists")


def classify_apply_failure(output: str) -> ApplyFailure:
    return classify_by_signatures(output, CONFLICT_SIGNATURES)


class GoogleStorageService:
    """Filestore instance ``app-filestore`` in the configured zone."""

    kind = ResourceKind.STORAGE

    def __init__(
        self,
        config: CliConfig,
        layout: InfraLayout,
        runner: CommandRunner | None = None,
        settings: Settings | None = None,
    ):
        self.provider: GoogleProviderConfig = require_provider(  # type: ignore[assignment]
            config, Provider.GOOGLE_CLOUD, "GoogleStorageService"
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
        write_tfvars(
            self.module_dir,
            {
                "project_id": self.project_id,
                "region": self.provider.require("region"),
                "zone": self.provider.require("zone"),
                "filestore_name": FILESTORE_NAME,
                "filestore_capacity_gb": FILESTORE_CAPACITY_GB,
                "filestore_export_path": self.provider.require("filestore_export_path"),
                "mount_options": self.provider.require("mount_options"),
            },
        )

    def check_live_state(self) -> bool:
        if not gcloud.ensure_authenticated(self.runner, self.settings):
            return False

        instance = gcloud.describe(
            self.runner,
            [
                "filestore", "instances", "describe", FILESTORE_NAME,
                f"--location={self.provider.zone}",
            ],
            self.project_id,
            api=FILESTORE_API,
        )
        state = (instance or {}).get("state")
        logger.info("filestore_state", name=FILESTORE_NAME, state=state)
        return state == READY_STATE

    def _resolve_imports(self) -> list[tuple[str, str]]:
        resource_id = (
            f"projects/{self.project_id}/locations/{self.provider.zone}"
            f"/instances/{FILESTORE_NAME}"
        )
        return [("google_filestore_instance.filestore", resource_id)]

    def _data_from_outputs(self, outputs: dict) -> StorageInfraData:
        ip = outputs.get("filestore_ip")
        if not ip:
            raise ProvisioningError(
                "terraform output 'filestore_ip' is missing",
                details={"module": str(self.module_dir)},
            )
        return StorageInfraData(
            filestore_ip=ip, filestore_name=FILESTORE_NAME, provider=Provider.GOOGLE_CLOUD
        )

    def provision_and_fetch(self) -> StorageInfraData:
        outputs = self.terraform.apply_with_import(classify_apply_failure, self._resolve_imports)
        data = self._data_from_outputs(outputs)
        self.store.save(self.kind, data)
        logger.info("filestore_ready", ip=data.filestore_ip)
        return data

    def fetch_existing_data(self) -> StorageInfraData:
        self.terraform.init()
        return self._data_from_outputs(self.terraform.output())

    def _expected_volume(self, data: StorageInfraData) -> dict:
        if not data.filestore_ip:
            raise ProvisioningError("Filestore IP is missing from the storage data")
        return expected_nfs_volume(
            data.filestore_ip, self.provider.mount_options, self.provider.filestore_export_path
        )

    def check_compose_driver_drift(self, data: StorageInfraData) -> list[VolumeDriverDiscrepancy]:
        document = load_compose(self.layout.prod_compose_file)
        return find_driver_drift(document, self._expected_volume(data))

    def fix_compose_driver_drift(self, data: StorageInfraData) -> None:
        path = self.layout.prod_compose_file
        document = load_compose(path)
        changed = apply_driver_fix(document, self._expected_volume(data))
        if not changed:
            logger.info("compose_volumes_up_to_date", path=str(path))
            return
        save_compose(path, document)
        logger.info("compose_volumes_fixed", path=str(path), volumes=changed)

    def probe_mount(self, data: StorageInfraData) -> bool:
        if not data.filestore_ip:
            return False
        return probe_nfs_mount(
            self.runner,
            data.filestore_ip,
            self.provider.mount_options,
            self.provider.filestore_export_path,
            image=self.settings.probe_image,
            timeout=self.settings.probe_timeout_seconds,
        )

"""Connection facts produced by provisioning, persisted as JSON."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from appwizard.config.cli_config import Provider


class ApplyFailure(Enum):
    """How a failed ``terraform apply`` should be handled."""

    CONFLICT = "conflict"
    FATAL = "fatal"


class ResourceKind(str, Enum):
    STORAGE = "storage"
    DATABASE = "database"
    COMPUTE = "compute"


def _drop_empty(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


def _provider(data: dict[str, Any]) -> Provider | None:
    value = data.get("provider")
    return Provider(value) if value else None


@dataclass
class StorageInfraData:
    """Network filesystem address (Filestore IP or EFS mount target IP)."""

    filestore_ip: str | None = None
    efs_mount_target_ip: str | None = None
    filestore_name: str | None = None
    file_system_id: str | None = None
    provider: Provider | None = None

    @property
    def address(self) -> str | None:
        return self.filestore_ip or self.efs_mount_target_ip

    def to_dict(self) -> dict[str, Any]:
        return _drop_empty(
            {
                "provider": self.provider.value if self.provider else None,
                "filestoreIp": self.filestore_ip,
                "efsMountTargetIp": self.efs_mount_target_ip,
                "filestoreName": self.filestore_name,
                "fileSystemId": self.file_system_id,
            }
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StorageInfraData:
        return cls(
            filestore_ip=data.get("filestoreIp"),
            efs_mount_target_ip=data.get("efsMountTargetIp"),
            filestore_name=data.get("filestoreName"),
            file_system_id=data.get("fileSystemId"),
            provider=_provider(data),
        )


@dataclass
class DBInfraData:
    """Managed Postgres connection facts."""

    public_ip: str | None = None
    connection_name: str | None = None
    endpoint: str | None = None
    port: int = 5432
    instance_name: str | None = None
    provider: Provider | None = None

    @property
    def host(self) -> str | None:
        if self.public_ip:
            return self.public_ip
        if self.endpoint:
            # RDS endpoints come back as host:port
            return self.endpoint.split(":", 1)[0]
        return None

    def to_dict(self) -> dict[str, Any]:
        return _drop_empty(
            {
                "provider": self.provider.value if self.provider else None,
                "cloudSqlPublicIp": self.public_ip,
                "cloudSqlConnectionName": self.connection_name,
                "dbInstanceEndpoint": self.endpoint,
                "dbInstancePort": self.port,
                "instanceName": self.instance_name,
            }
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DBInfraData:
        return cls(
            public_ip=data.get("cloudSqlPublicIp"),
            connection_name=data.get("cloudSqlConnectionName"),
            endpoint=data.get("dbInstanceEndpoint"),
            port=int(data.get("dbInstancePort") or 5432),
            instance_name=data.get("instanceName"),
            provider=_provider(data),
        )


@dataclass
class ComputeInfraData:
    public_ip: str | None = None
    instance_name: str | None = None
    ssh_user: str = "ubuntu"
    ssh_key_path: str | None = None
    provider: Provider | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_empty(
            {
                "provider": self.provider.value if self.provider else None,
                "publicIp": self.public_ip,
                "instanceName": self.instance_name,
                "sshUser": self.ssh_user,
                "sshKeyPath": self.ssh_key_path,
            }
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ComputeInfraData:
        return cls(
            public_ip=data.get("publicIp"),
            instance_name=data.get("instanceName"),
            ssh_user=data.get("sshUser", "ubuntu"),
            ssh_key_path=data.get("sshKeyPath"),
            provider=_provider(data),
        )

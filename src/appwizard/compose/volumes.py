"""
NFS volume drivers in the production compose file.

The compose volumes must point at the live network filesystem (Filestore or
EFS). When the infrastructure address changes, the driver options drift and
are rewritten here.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from appwizard.infra.runner import CommandRunner

logger = structlog.get_logger()

PROBE_FILE = "/mnt/__nfs_test__"


@dataclass(frozen=True)
class VolumeDriverDiscrepancy:
    volume_name: str
    current_driver_opts: dict[str, Any]
    expected_driver_opts: dict[str, Any]


def expected_nfs_volume(address: str, mount_options: str, export_path: str) -> dict[str, Any]:
    """Volume definition that mounts ``export_path`` from the NFS server at ``address``."""
    options = f"addr={address},{mount_options}" if mount_options else f"addr={address}"
    return {
        "driver": "local",
        "driver_opts": {
            "type": "nfs",
            "o": options,
            "device": f":{export_path}",
        },
    }


def find_driver_drift(
    document: dict[str, Any], expected: dict[str, Any]
) -> list[VolumeDriverDiscrepancy]:
    drift: list[VolumeDriverDiscrepancy] = []
    expected_opts = expected.get("driver_opts", {})
    expected_driver = expected.get("driver", "local")

    for name, volume in (document.get("volumes") or {}).items():
        volume = volume or {}
        current_opts = volume.get("driver_opts") or {}
        current_driver = volume.get("driver") or "local"
        if current_opts != expected_opts or current_driver != expected_driver:
            drift.append(VolumeDriverDiscrepancy(str(name), dict(current_opts), dict(expected_opts)))

    return drift


def apply_driver_fix(document: dict[str, Any], expected: dict[str, Any]) -> list[str]:
    """Rewrite every drifted volume in place; returns the names changed."""
    changed = [d.volume_name for d in find_driver_drift(document, expected)]
    volumes = document.get("volumes") or {}
    for name in changed:
        volume = dict(volumes.get(name) or {})
        volume["driver"] = expected.get("driver", "local")
        volume["driver_opts"] = dict(expected.get("driver_opts", {}))
        volumes[name] = volume
    if changed:
        document["volumes"] = volumes
    return changed


def probe_nfs_mount(
    runner: CommandRunner,
    address: str,
    mount_options: str,
    export_path: str,
    image: str = "alpine:latest",
    timeout: float = 60,
) -> bool:
    """
    Check that the NFS export can be mounted and written from a container.

    A throwaway docker volume is created with the NFS driver options, a
    short-lived container writes and re-reads one file through it, and the
    volume is always removed afterwards.
    """
    volume = f"nfs_test_{int(time.time() * 1000)}"
    opts = expected_nfs_volume(address, mount_options, export_path)["driver_opts"]
    log = logger.bind(volume=volume, address=address)

    created = runner.run(
        [
            "docker", "volume", "create", volume,
            "--driver", "local",
            "--opt", f"type={opts['type']}",
            "--opt", f"o={opts['o']}",
            "--opt", f"device={opts['device']}",
        ]
    )
    if not created.ok:
        log.warning("probe_volume_create_failed", stderr=created.stderr.strip())
        return False

    try:
        result = runner.run(
            [
                "docker", "run", "--rm",
                "--mount", f"source={volume},target=/mnt",
                image,
                "sh", "-c", f"echo ok > {PROBE_FILE} && test -f {PROBE_FILE}",
            ],
            timeout=timeout,
        )
        if result.timed_out:
            log.warning("probe_timed_out", timeout=timeout)
            return False
        if not result.ok:
            log.warning("probe_failed", stderr=result.stderr.strip())
            return False
        log.info("probe_succeeded")
        return True
    finally:
        removed = runner.run(["docker", "volume", "rm", volume])
        if not removed.ok:
            log.warning("probe_volume_remove_failed", stderr=removed.stderr.strip())

"""Docker Compose document handling: start-up order and volume drivers."""

from appwizard.compose.document import compose_file_name, load_compose, save_compose
from appwizard.compose.ordering import (
    ServiceNode,
    deduce_deployment_order,
    resolve_deployment_order,
    service_position,
    services_from_compose,
)
from appwizard.compose.volumes import (
    VolumeDriverDiscrepancy,
    apply_driver_fix,
    expected_nfs_volume,
    find_driver_drift,
    probe_nfs_mount,
)

__all__ = [
    "ServiceNode",
    "VolumeDriverDiscrepancy",
    "apply_driver_fix",
    "compose_file_name",
    "deduce_deployment_order",
    "expected_nfs_volume",
    "find_driver_drift",
    "load_compose",
    "probe_nfs_mount",
    "resolve_deployment_order",
    "save_compose",
    "service_position",
    "services_from_compose",
]

"""
Sequential reconciliation of production infrastructure.

Each resource kind goes through the same steps:

    generate tfvars -> live check -> READY:     read existing outputs
                                  -> NOT_READY: confirm, provision (import on conflict)

then kind-specific follow-ups: compose volume drift and a mount probe for
storage, the application role for the database. Kinds run one after the
other (storage, database, compute) with a confirmation before each phase.
Best-effort checks only add warnings to the report.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable

import structlog

from appwizard.core.errors import BlockedError, ConfigurationError
from appwizard.infra.credentials import APP_DB_PASSWORD, APP_DB_USER, Credentials
from appwizard.infra.models import (
    ComputeInfraData,
    DBInfraData,
    ResourceKind,
    StorageInfraData,
)
from appwizard.infra.services import CloudProviderServices
from appwizard.infra.store import InfraDataStore
from appwizard.logging import bind_context

logger = structlog.get_logger()

RECONCILE_ORDER = (ResourceKind.STORAGE, ResourceKind.DATABASE, ResourceKind.COMPUTE)

ConfirmFn = Callable[[str, bool], bool]
CredentialsPrompt = Callable[[], "tuple[str, str] | None"]


class ReconcileOutcome(str, Enum):
    READY = "ready"
    PROVISIONED = "provisioned"
    SKIPPED = "skipped"


@dataclass
class ReconcileReport:
    outcomes: dict[ResourceKind, ReconcileOutcome] = field(default_factory=dict)
    data: dict[ResourceKind, object] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        logger.warning("reconcile_warning", message=message)
        self.warnings.append(message)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


def _always_yes(message: str, default: bool = True) -> bool:
    return True


class InfraReconciler:
    """Drives the storage, database and compute adapters of one provider."""

    def __init__(
        self,
        services: CloudProviderServices,
        store: InfraDataStore,
        credentials: Credentials,
        confirm: ConfirmFn | None = None,
        ask_db_credentials: CredentialsPrompt | None = None,
        assume_yes: bool = False,
    ):
        self.services = services
        self.store = store
        self.credentials = credentials
        self.confirm = _always_yes if assume_yes or confirm is None else confirm
        self.ask_db_credentials = ask_db_credentials
        self.log = bind_context(provider=services.provider.value)

    def _require_confirmation(self, message: str) -> None:
        if not self.confirm(message, True):
            raise BlockedError(f"Aborted: {message}")

    def check_all(self) -> dict[ResourceKind, bool]:
        """Live state of every kind, without changing anything."""
        return {
            ResourceKind.STORAGE: self.services.storage.check_live_state(),
            ResourceKind.DATABASE: self.services.database.check_live_state(),
            ResourceKind.COMPUTE: self.services.compute.check_live_state(),
        }

    def _converge(self, kind: ResourceKind, reconciler, report: ReconcileReport):
        reconciler.generate_declarative_config()

        if reconciler.check_live_state():
            self.log.info("resource_ready", kind=kind.value)
            data = reconciler.fetch_existing_data()
            self.store.save(kind, data)
            report.outcomes[kind] = ReconcileOutcome.READY
        else:
            self.log.info("resource_not_ready", kind=kind.value)
            self._require_confirmation(f"{kind.value} is not ready. Provision it now?")
            data = reconciler.provision_and_fetch()
            report.outcomes[kind] = ReconcileOutcome.PROVISIONED

        report.data[kind] = data
        return data

    def reconcile_storage(self, report: ReconcileReport) -> StorageInfraData:
        storage = self.services.storage
        data = self._converge(ResourceKind.STORAGE, storage, report)

        try:
            drift = storage.check_compose_driver_drift(data)
        except ConfigurationError as e:
            report.warn(f"Compose volume check skipped: {e.message}")
            drift = []

        if drift:
            names = ", ".join(d.volume_name for d in drift)
            self.log.info("compose_volume_drift", volumes=[d.volume_name for d in drift])
            if self.confirm(f"Volumes out of date ({names}). Rewrite the compose file?", True):
                storage.fix_compose_driver_drift(data)
            else:
                report.warn(f"Compose volumes left out of date: {names}")

        if not storage.probe_mount(data):
            report.warn("NFS mount probe failed; containers may not be able to use the volume")

        return data

    def _ensure_app_credentials(self, report: ReconcileReport) -> bool:
        if self.credentials.app_user and self.credentials.app_password:
            return True
        answer = self.ask_db_credentials() if self.ask_db_credentials else None
        if not answer:
            report.warn("No application database credentials; user creation skipped")
            return False
        username, password = answer
        self.credentials.update({APP_DB_USER: username, APP_DB_PASSWORD: password})
        return True

    def reconcile_database(self, report: ReconcileReport) -> DBInfraData:
        database = self.services.database
        data = self._converge(ResourceKind.DATABASE, database, report)

        if self._ensure_app_credentials(report) and not database.check_user_exists(data):
            user = self.credentials.app_user
            if self.confirm(f"Database user '{user}' does not exist. Create it?", True):
                database.create_user(data)
            else:
                report.warn(f"Database user '{user}' was not created")

        return data

    def reconcile_compute(self, report: ReconcileReport) -> ComputeInfraData:
        return self._converge(ResourceKind.COMPUTE, self.services.compute, report)

    def reconcile_all(self, kinds: Iterable[ResourceKind] | None = None) -> ReconcileReport:
        """
        Reconcile the selected kinds in storage, database, compute order.

        Raises:
            BlockedError: if the operator declines a phase
            ProvisioningError: if terraform fails for anything but a known conflict
        """
        selected = set(kinds) if kinds is not None else set(RECONCILE_ORDER)
        report = ReconcileReport()
        steps = {
            ResourceKind.STORAGE: self.reconcile_storage,
            ResourceKind.DATABASE: self.reconcile_database,
            ResourceKind.COMPUTE: self.reconcile_compute,
        }

        for kind in RECONCILE_ORDER:
            if kind not in selected:
                report.outcomes[kind] = ReconcileOutcome.SKIPPED
                continue
            self._require_confirmation(f"Reconcile {kind.value}?")
            self.log.info("reconcile_phase", kind=kind.value)
            steps[kind](report)

        return report

"""Tests for the sequential infrastructure reconciler."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from appwizard.compose.document import load_compose
from appwizard.config.cli_config import Provider
from appwizard.core.errors import BlockedError, ConfigurationError
from appwizard.infra.credentials import Credentials
from appwizard.infra.models import (
    ComputeInfraData,
    DBInfraData,
    ResourceKind,
    StorageInfraData,
)
from appwizard.infra.reconcile import InfraReconciler, ReconcileOutcome
from appwizard.infra.services import CloudProviderServices
from appwizard.infra.store import InfraDataStore

PROD_COMPOSE = """\
services:
  db:
    image: postgres
  api:
    image: api
    depends_on: [db]
    volumes:
      - uploads:/data
volumes:
  uploads:
    driver: local
    driver_opts:
      type: nfs
      o: addr=10.0.0.1,nolock,hard,timeo=600
      device: ":/"
"""


@pytest.fixture
def mock_services():
    storage = MagicMock()
    storage.check_live_state.return_value = True
    storage.fetch_existing_data.return_value = StorageInfraData(filestore_ip="10.0.0.2")
    storage.check_compose_driver_drift.return_value = []
    storage.probe_mount.return_value = True

    database = MagicMock()
    database.check_live_state.return_value = True
    database.fetch_existing_data.return_value = DBInfraData(public_ip="34.1.2.3")
    database.check_user_exists.return_value = True

    compute = MagicMock()
    compute.check_live_state.return_value = True
    compute.fetch_existing_data.return_value = ComputeInfraData(public_ip="35.0.0.1")

    return CloudProviderServices(Provider.GOOGLE_CLOUD, storage, database, compute)


@pytest.fixture
def reconciler_for(layout, env_prod):
    def build(services, confirm=None, ask=None, assume_yes=False):
        return InfraReconciler(
            services,
            InfraDataStore(layout, services.provider),
            Credentials(env_prod),
            confirm=confirm,
            ask_db_credentials=ask,
            assume_yes=assume_yes,
        )

    return build


class TestReconcileAll:
    def test_all_ready(self, mock_services, reconciler_for, layout):
        """Ready resources are adopted and their outputs saved."""
        report = reconciler_for(mock_services, assume_yes=True).reconcile_all()

        assert report.outcomes == {
            ResourceKind.STORAGE: ReconcileOutcome.READY,
            ResourceKind.DATABASE: ReconcileOutcome.READY,
            ResourceKind.COMPUTE: ReconcileOutcome.READY,
        }
        mock_services.storage.provision_and_fetch.assert_not_called()
        # ready resources still have their outputs persisted
        store = InfraDataStore(layout, Provider.GOOGLE_CLOUD)
        assert store.load(ResourceKind.COMPUTE, ComputeInfraData).public_ip == "35.0.0.1"

    def test_phases_run_in_order(self, mock_services, reconciler_for):
        """Storage, database and compute are reconciled in that order."""
        calls = []
        mock_services.storage.generate_declarative_config.side_effect = lambda: calls.append("storage")
        mock_services.database.generate_declarative_config.side_effect = lambda: calls.append("database")
        mock_services.compute.generate_declarative_config.side_effect = lambda: calls.append("compute")

        reconciler_for(mock_services, assume_yes=True).reconcile_all(
            [ResourceKind.COMPUTE, ResourceKind.STORAGE, ResourceKind.DATABASE]
        )

        assert calls == ["storage", "database", "compute"]

    def test_unselected_kinds_are_skipped(self, mock_services, reconciler_for):
        """Kinds left out of --only are skipped."""
        report = reconciler_for(mock_services, assume_yes=True).reconcile_all([ResourceKind.DATABASE])

        assert report.outcomes[ResourceKind.STORAGE] is ReconcileOutcome.SKIPPED
        assert report.outcomes[ResourceKind.COMPUTE] is ReconcileOutcome.SKIPPED
        mock_services.storage.generate_declarative_config.assert_not_called()

    def test_declining_phase_blocks(self, mock_services, reconciler_for):
        """Declining a phase blocks the command."""
        reconciler = reconciler_for(mock_services, confirm=lambda message, default: False)
        with pytest.raises(BlockedError, match="Reconcile storage"):
            reconciler.reconcile_all()
        mock_services.storage.generate_declarative_config.assert_not_called()

    def test_declining_provisioning_blocks(self, mock_services, reconciler_for):
        """Declining to provision a missing resource blocks the command."""
        mock_services.storage.check_live_state.return_value = False
        reconciler = reconciler_for(
            mock_services, confirm=lambda message, default: message.startswith("Reconcile")
        )
        with pytest.raises(BlockedError, match="not ready"):
            reconciler.reconcile_all()
        mock_services.storage.provision_and_fetch.assert_not_called()

    def test_not_ready_is_provisioned(self, mock_services, reconciler_for):
        """A missing resource is provisioned after confirmation."""
        mock_services.compute.check_live_state.return_value = False
        mock_services.compute.provision_and_fetch.return_value = ComputeInfraData(public_ip="35.0.0.9")

        report = reconciler_for(mock_services, assume_yes=True).reconcile_all()

        assert report.outcomes[ResourceKind.COMPUTE] is ReconcileOutcome.PROVISIONED
        assert report.data[ResourceKind.COMPUTE].public_ip == "35.0.0.9"
        mock_services.compute.fetch_existing_data.assert_not_called()


class TestStorageFollowUps:
    def test_declined_drift_fix_is_warning(self, mock_services, reconciler_for):
        """Declining the volume fix leaves a warning."""
        mock_services.storage.check_compose_driver_drift.return_value = [MagicMock(volume_name="uploads")]
        reconciler = reconciler_for(
            mock_services, confirm=lambda message, default: not message.startswith("Volumes")
        )

        report = reconciler.reconcile_all([ResourceKind.STORAGE])

        mock_services.storage.fix_compose_driver_drift.assert_not_called()
        assert report.warnings == ["Compose volumes left out of date: uploads"]

    def test_missing_compose_file_is_warning(self, mock_services, reconciler_for):
        """A missing compose file only skips the volume check."""
        mock_services.storage.check_compose_driver_drift.side_effect = ConfigurationError("no file")
        report = reconciler_for(mock_services, assume_yes=True).reconcile_all([ResourceKind.STORAGE])
        assert report.warnings == ["Compose volume check skipped: no file"]

    def test_mount_check_failure_is_warning(self, mock_services, reconciler_for):
        """A failed mount check is a warning; storage stays ready."""
        mock_services.storage.probe_mount.return_value = False
        report = reconciler_for(mock_services, assume_yes=True).reconcile_all([ResourceKind.STORAGE])

        assert report.has_warnings
        assert report.outcomes[ResourceKind.STORAGE] is ReconcileOutcome.READY


class TestDatabaseFollowUps:
    def test_prompts_for_missing_credentials(self, mock_services, reconciler_for, env_prod):
        """Prompted credentials are saved and the user created."""
        mock_services.database.check_user_exists.return_value = False

        reconciler_for(mock_services, ask=lambda: ("app", "pw"), assume_yes=True).reconcile_all(
            [ResourceKind.DATABASE]
        )

        text = env_prod.read_text()
        assert "APP_DB_USER=app" in text
        assert "APP_DB_PASSWORD=pw" in text
        mock_services.database.create_user.assert_called_once()

    def test_no_credentials_skips_user(self, mock_services, reconciler_for):
        """Without credentials the user step is skipped with a warning."""
        report = reconciler_for(mock_services, assume_yes=True).reconcile_all([ResourceKind.DATABASE])

        mock_services.database.check_user_exists.assert_not_called()
        assert report.warnings == ["No application database credentials; user creation skipped"]

    def test_existing_user_is_left_alone(self, mock_services, reconciler_for, env_prod):
        """An existing application user is not recreated."""
        env_prod.write_text(env_prod.read_text() + "APP_DB_USER=app\nAPP_DB_PASSWORD=pw\n")
        reconciler_for(mock_services, assume_yes=True).reconcile_all([ResourceKind.DATABASE])

        mock_services.database.create_user.assert_not_called()


class TestStorageScenario:
    def test_not_ready_storage_ends_up_in_compose(
        self, google_config, layout, runner, settings, tf_outputs, reconciler_for, monkeypatch
    ):
        """Filestore comes up and its IP replaces the stale address in the compose volume."""
        monkeypatch.setattr("appwizard.infra.google.gcloud.has_credentials", lambda: True)
        layout.prod_compose_file.write_text(PROD_COMPOSE)
        runner.on_json(["gcloud", "filestore"], {"state": "CREATING"})
        runner.on(["terraform", "output"], stdout=tf_outputs(filestore_ip="10.20.30.40"))

        services = CloudProviderServices.for_config(google_config, layout, runner, settings)
        report = reconciler_for(services, assume_yes=True).reconcile_all([ResourceKind.STORAGE])

        assert report.outcomes[ResourceKind.STORAGE] is ReconcileOutcome.PROVISIONED
        assert report.warnings == []
        volume = load_compose(layout.prod_compose_file)["volumes"]["uploads"]
        assert volume["driver_opts"]["o"] == "addr=10.20.30.40,nolock,hard,timeo=600"
        assert len(runner.called("terraform", "apply")) == 1
        assert runner.called("docker", "run")

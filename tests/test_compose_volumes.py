"""Tests for compose documents and NFS volume driver drift."""

from __future__ import annotations

import pytest
import yaml

from appwizard.compose.document import (
    compose_file_name,
    load_compose,
    save_compose,
    service_build_context,
    service_healthcheck,
)
from appwizard.compose.volumes import (
    apply_driver_fix,
    expected_nfs_volume,
    find_driver_drift,
    probe_nfs_mount,
)
from appwizard.core.errors import ConfigurationError


@pytest.fixture
def document():
    return {
        "services": {
            "api": {
                "build": {"context": "./backend"},
                "healthcheck": {"test": ["CMD", "curl", "-f", "http://localhost/health"]},
                "volumes": ["uploads:/data"],
            },
            "web": {"build": "./frontend"},
            "db": {"image": "postgres", "healthcheck": {"test": "pg_isready"}},
        },
        "volumes": {
            "uploads": {
                "driver": "local",
                "driver_opts": {"type": "nfs", "o": "addr=10.0.0.1,nolock", "device": ":/old"},
            },
            "cache": None,
        },
    }


class TestComposeDocument:
    def test_compose_file_name(self):
        """Only dev and prod have compose files."""
        assert compose_file_name("prod") == "docker-compose.prod.yml"
        assert compose_file_name("dev") == "docker-compose.dev.yml"
        with pytest.raises(ConfigurationError):
            compose_file_name("staging")

    def test_build_context(self, document, tmp_path):
        """Build contexts come from build, build.context or containers/<name>."""
        assert service_build_context(document, "api", tmp_path) == tmp_path / "./backend"
        assert service_build_context(document, "web", tmp_path) == tmp_path / "./frontend"
        assert service_build_context(document, "db", tmp_path) == tmp_path / "containers/db"

    def test_healthcheck(self, document):
        """Healthcheck tests are joined into one command string."""
        assert service_healthcheck(document, "api") == "CMD curl -f http://localhost/health"
        assert service_healthcheck(document, "db") == "pg_isready"
        assert service_healthcheck(document, "web") is None

    def test_save_preserves_key_order(self, document, tmp_path):
        """Saving keeps top-level key order and content."""
        path = tmp_path / "docker-compose.prod.yml"
        save_compose(path, document)
        text = path.read_text()
        assert text.index("services:") < text.index("volumes:")
        assert load_compose(path) == document

    def test_invalid_yaml(self, tmp_path):
        """Unparseable YAML is a configuration error."""
        path = tmp_path / "bad.yml"
        path.write_text("services: [unclosed")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_compose(path)


class TestDriverDrift:
    def test_expected_volume(self):
        """The expected volume is a local NFS mount of the export path."""
        assert expected_nfs_volume("10.1.2.3", "nolock,hard,timeo=600", "/share") == {
            "driver": "local",
            "driver_opts": {
                "type": "nfs",
                "o": "addr=10.1.2.3,nolock,hard,timeo=600",
                "device": ":/share",
            },
        }

    def test_drift_lists_outdated_volumes(self, document):
        """Volumes with other mount options are reported with their current options."""
        expected = expected_nfs_volume("10.9.9.9", "nolock", "/share")
        drift = find_driver_drift(document, expected)

        assert [d.volume_name for d in drift] == ["uploads", "cache"]
        assert drift[0].current_driver_opts["o"] == "addr=10.0.0.1,nolock"
        assert drift[0].expected_driver_opts["o"] == "addr=10.9.9.9,nolock"
        assert drift[1].current_driver_opts == {}

    def test_fix_then_check_reports_nothing(self, document):
        """Fixing drift makes the following check come back empty."""
        expected = expected_nfs_volume("10.9.9.9", "nolock", "/share")
        assert find_driver_drift(document, expected)

        changed = apply_driver_fix(document, expected)

        assert changed == ["uploads", "cache"]
        assert find_driver_drift(document, expected) == []
        assert document["services"]["api"]["volumes"] == ["uploads:/data"]

    def test_non_local_driver_is_drift(self):
        """A non-local driver is out of date even with matching options."""
        expected = expected_nfs_volume("10.0.0.1", "nolock", "/")
        document = {"volumes": {"v": {"driver": "custom", "driver_opts": expected["driver_opts"]}}}
        assert [d.volume_name for d in find_driver_drift(document, expected)] == ["v"]

    def test_missing_driver_counts_as_local(self):
        """A volume without a driver uses the local driver."""
        expected = expected_nfs_volume("10.0.0.1", "nolock", "/")
        document = {"volumes": {"v": {"driver_opts": dict(expected["driver_opts"])}}}
        assert find_driver_drift(document, expected) == []

    def test_no_volumes(self):
        """A document without volumes has nothing to fix."""
        expected = expected_nfs_volume("10.0.0.1", "nolock", "/")
        assert find_driver_drift({"services": {}}, expected) == []
        assert apply_driver_fix({"services": {}}, expected) == []


class TestProbeNfsMount:
    def test_success_removes_volume(self, runner):
        """A successful mount check removes its temporary volume."""
        assert probe_nfs_mount(runner, "10.0.0.5", "nolock", "/share") is True

        create = runner.called("docker", "volume", "create")[0]
        volume = create[3]
        assert volume.startswith("nfs_test_")
        assert "o=addr=10.0.0.5,nolock" in create
        assert "device=:/share" in create

        run = runner.called("docker", "run")[0]
        assert f"source={volume},target=/mnt" in run
        assert "alpine:latest" in run
        assert runner.called("docker", "volume", "rm") == [["docker", "volume", "rm", volume]]

    def test_failed_run_still_removes_volume(self, runner):
        """A failed mount still removes the temporary volume."""
        runner.on(["docker", "run"], returncode=32, stderr="mount failed")
        assert probe_nfs_mount(runner, "10.0.0.5", "nolock", "/share") is False
        assert len(runner.called("docker", "volume", "rm")) == 1

    def test_timeout_is_failure(self, runner):
        """A container that times out is a failed check."""
        runner.on(["docker", "run"], returncode=-1, timed_out=True)
        assert probe_nfs_mount(runner, "10.0.0.5", "nolock", "/share", timeout=1) is False
        assert len(runner.called("docker", "volume", "rm")) == 1

    def test_volume_create_failure(self, runner):
        """No container runs when the volume cannot be created."""
        runner.on(["docker", "volume", "create"], returncode=1, stderr="no nfs")
        assert probe_nfs_mount(runner, "10.0.0.5", "nolock", "/share") is False
        assert runner.called("docker", "run") == []

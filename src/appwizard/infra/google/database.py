"""
Cloud SQL for PostgreSQL.

The instance is named after ``POSTGRES_DB`` from ``.env.prod`` and holds the
``app_database`` database. The application role is checked through a direct
SQL connection first, then through ``gcloud sql users``; creation goes the
other way round, since either channel may be blocked depending on network
rules and enabled APIs.
"""

from __future__ import annotations

import json

import structlog
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from appwizard.config.cli_config import CliConfig, GoogleProviderConfig, InfraPerformance, Provider
from appwizard.config.settings import Settings, get_settings
from appwizard.core.errors import ConfigurationError, ProvisioningError
from appwizard.infra import sql
from appwizard.infra.base import InfraLayout, require_provider
from appwizard.infra.credentials import Credentials
from appwizard.infra.google import gcloud
from appwizard.infra.models import ApplyFailure, DBInfraData, ResourceKind
from appwizard.infra.runner import CommandRunner
from appwizard.infra.store import InfraDataStore
from appwizard.infra.terraform import Terraform, classify_by_signatures, write_tfvars

logger = structlog.get_logger()

APP_DATABASE_NAME = "app_database"
SQL_ADMIN_API = "sqladmin.googleapis.com"
READY_STATE = "RUNNABLE"

CONFLICT_SIGNATURES = ("instanceAlreadyExists", "already exists")

# (database version, machine tier) per performance level
PERFORMANCE_TIERS = {
    InfraPerformance.LOW: ("POSTGRES_15", "db-f1-micro"),
    InfraPerformance.MEDIUM: ("POSTGRES_16", "db-n1-standard-1"),
    InfraPerformance.HIGH: ("POSTGRES_16", "db-n1-standard-2"),
}


def classify_apply_failure(output: str) -> ApplyFailure:
    return classify_by_signatures(output, CONFLICT_SIGNATURES)


class GoogleDatabaseService:
    kind = ResourceKind.DATABASE

    def __init__(
        self,
        config: CliConfig,
        layout: InfraLayout,
        runner: CommandRunner | None = None,
        settings: Settings | None = None,
    ):
        self.provider: GoogleProviderConfig = require_provider(  # type: ignore[assignment]
            config, Provider.GOOGLE_CLOUD, "GoogleDatabaseService"
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

    @property
    def credentials(self) -> Credentials:
        return Credentials(self.layout.credentials_file)

    @property
    def instance_name(self) -> str:
        return self.credentials.postgres_db

    def generate_declarative_config(self) -> None:
        version, tier = PERFORMANCE_TIERS[self.provider.performance]
        write_tfvars(
            self.module_dir,
            {
                "project_id": self.project_id,
                "region": self.provider.require("region"),
                "sql_instance_name": self.instance_name,
                "sql_database_version": version,
                "sql_tier": tier,
                "database_name": APP_DATABASE_NAME,
            },
        )

    def check_live_state(self) -> bool:
        if not gcloud.ensure_authenticated(self.runner, self.settings):
            return False

        instance = gcloud.describe(
            self.runner,
            ["sql", "instances", "describe", self.instance_name],
            self.project_id,
            api=SQL_ADMIN_API,
        )
        state = (instance or {}).get("state")
        logger.info("cloud_sql_state", instance=self.instance_name, state=state)
        return state == READY_STATE

    def _resolve_imports(self) -> list[tuple[str, str]]:
        instance_id = f"projects/{self.project_id}/instances/{self.instance_name}"
        return [
            ("google_sql_database_instance.db_instance", instance_id),
            ("google_sql_database.default_db", f"{instance_id}/databases/{APP_DATABASE_NAME}"),
        ]

    def _data_from_outputs(self, outputs: dict) -> DBInfraData:
        ip = outputs.get("cloud_sql_public_ip")
        connection_name = outputs.get("cloud_sql_connection_name")
        if not ip or not connection_name:
            raise ProvisioningError(
                "terraform outputs 'cloud_sql_public_ip' and 'cloud_sql_connection_name' are required",
                details={"module": str(self.module_dir)},
            )
        return DBInfraData(
            public_ip=ip,
            connection_name=connection_name,
            instance_name=connection_name.split(":")[-1],
            provider=Provider.GOOGLE_CLOUD,
        )

    def provision_and_fetch(self) -> DBInfraData:
        outputs = self.terraform.apply_with_import(classify_apply_failure, self._resolve_imports)
        data = self._data_from_outputs(outputs)
        self.credentials.set_database_url(data.public_ip, data.port)
        self.store.save(self.kind, data)
        logger.info("cloud_sql_ready", ip=data.public_ip, connection_name=data.connection_name)
        return data

    def fetch_existing_data(self) -> DBInfraData:
        self.terraform.init()
        return self._data_from_outputs(self.terraform.output())

    def _instance_id(self, data: DBInfraData) -> str:
        if not data.connection_name:
            raise ConfigurationError("Cloud SQL connection name is missing from the database data")
        return data.connection_name.split(":")[-1]

    def _admin_url(self, data: DBInfraData) -> str:
        if not data.host:
            raise ConfigurationError("Cloud SQL public IP is missing from the database data")
        return self.credentials.admin_url(data.host, data.port)

    def _app_credentials(self) -> tuple[str, str]:
        creds = self.credentials
        if not creds.app_user or not creds.app_password:
            raise ConfigurationError(
                "APP_DB_USER and APP_DB_PASSWORD must be set in .env.prod",
                details={"path": str(creds.path)},
            )
        return creds.app_user, creds.app_password

    def check_user_exists(self, data: DBInfraData) -> bool:
        instance_id = self._instance_id(data)
        username, _ = self._app_credentials()
        admin_url = self._admin_url(data)

        try:
            return sql.role_exists(admin_url, username)
        except OperationalError as e:
            if sql.is_auth_failure(e):
                logger.info("db_user_auth_failed", user=username)
                return False
            logger.warning("db_direct_check_failed", error=str(e))
        except SQLAlchemyError as e:
            logger.warning("db_direct_check_failed", error=str(e))

        result = self.runner.run(
            [
                "gcloud", "sql", "users", "list",
                f"--instance={instance_id}",
                "--format=json",
                f"--project={self.project_id}",
            ]
        )
        if not result.ok:
            logger.warning("gcloud_users_list_failed", stderr=result.stderr.strip())
            return False
        try:
            users = json.loads(result.stdout or "[]")
        except json.JSONDecodeError:
            logger.warning("gcloud_users_list_not_json")
            return False
        return isinstance(users, list) and any(u.get("name") == username for u in users)

    def create_user(self, data: DBInfraData) -> None:
        instance_id = self._instance_id(data)
        username, password = self._app_credentials()

        result = self.runner.run(
            [
                "gcloud", "sql", "users", "create", username,
                f"--instance={instance_id}",
                f"--password={password}",
                f"--project={self.project_id}",
            ]
        )
        if result.ok:
            logger.info("db_user_created", user=username, channel="gcloud")
            return

        logger.warning("gcloud_users_create_failed", stderr=result.stderr.strip())
        try:
            sql.create_role(self._admin_url(data), username, password)
        except SQLAlchemyError as e:
            raise ProvisioningError(
                f"Could not create database user '{username}'",
                stderr=result.stderr,
                details={"sql_error": str(e)},
            ) from e
        logger.info("db_user_created", user=username, channel="sql")

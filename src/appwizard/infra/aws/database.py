"""
RDS for PostgreSQL.

The AWS CLI cannot manage Postgres roles, so the application user is
checked and created over a direct SQL connection only.
"""

from __future__ import annotations

import structlog
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from appwizard.config.cli_config import AWSProviderConfig, CliConfig, InfraPerformance, Provider
from appwizard.config.settings import Settings, get_settings
from appwizard.core.errors import ConfigurationError, ProvisioningError
from appwizard.infra import sql
from appwizard.infra.aws.awscli import AWSCli
from appwizard.infra.base import InfraLayout, require_provider
from appwizard.infra.credentials import Credentials
from appwizard.infra.models import ApplyFailure, DBInfraData, ResourceKind
from appwizard.infra.runner import CommandRunner
from appwizard.infra.store import InfraDataStore
from appwizard.infra.terraform import Terraform, classify_by_signatures, write_tfvars

logger = structlog.get_logger()

APP_DATABASE_NAME = "app_database"
POSTGRES_VERSION = "15"
ALLOCATED_STORAGE_GB = 20
READY_STATE = "available"

CONFLICT_SIGNATURES = ("already exists", "DBInstanceAlreadyExists")

INSTANCE_CLASSES = {
    InfraPerformance.LOW: "db.t3.micro",
    InfraPerformance.MEDIUM: "db.t3.small",
    InfraPerformance.HIGH: "db.t3.medium",
}


def classify_apply_failure(output: str) -> ApplyFailure:
    return classify_by_signatures(output, CONFLICT_SIGNATURES)


class AWSDatabaseService:
    kind = ResourceKind.DATABASE

    def __init__(
        self,
        config: CliConfig,
        layout: InfraLayout,
        runner: CommandRunner | None = None,
        settings: Settings | None = None,
    ):
        self.provider: AWSProviderConfig = require_provider(  # type: ignore[assignment]
            config, Provider.AWS, "AWSDatabaseService"
        )
        self.layout = layout
        self.runner = runner or CommandRunner()
        self.settings = settings or get_settings()
        self.aws = AWSCli(self.runner, self.settings, self.provider.region)
        self.module_dir = layout.module_dir(Provider.AWS, self.kind)
        self.terraform = Terraform(self.module_dir, self.runner)
        self.store = InfraDataStore(layout, Provider.AWS)

    @property
    def credentials(self) -> Credentials:
        return Credentials(self.layout.credentials_file)

    def generate_declarative_config(self) -> None:
        creds = self.credentials
        write_tfvars(
            self.module_dir,
            {
                "region": self.provider.require("region"),
                "sql_instance_name": creds.postgres_db,
                "sql_database_version": POSTGRES_VERSION,
                "sql_instance_class": INSTANCE_CLASSES[self.provider.performance],
                "allocated_storage": ALLOCATED_STORAGE_GB,
                "database_name": APP_DATABASE_NAME,
                "db_username": creds.require("POSTGRES_USER"),
                "db_password": creds.require("POSTGRES_PASSWORD"),
                "security_groups": self.provider.require("security_groups"),
            },
        )

    def check_live_state(self) -> bool:
        if not self.provider.region:
            logger.warning("aws_region_missing")
            return False
        if not self.aws.ensure_authenticated():
            return False

        identifier = self.credentials.postgres_db
        status = self.aws.text(
            "rds", "describe-db-instances",
            "--db-instance-identifier", identifier,
            "--query", "DBInstances[0].DBInstanceStatus",
        )
        logger.info("rds_state", instance=identifier, state=status)
        return status == READY_STATE

    def _resolve_imports(self) -> list[tuple[str, str]]:
        identifier = self.aws.text(
            "rds", "describe-db-instances",
            "--db-instance-identifier", self.credentials.postgres_db,
            "--query", "DBInstances[0].DBInstanceIdentifier",
        )
        return [("aws_db_instance.db_instance", identifier)] if identifier else []

    def _data_from_outputs(self, outputs: dict) -> DBInfraData:
        endpoint = outputs.get("db_instance_endpoint")
        if not endpoint:
            raise ProvisioningError(
                "terraform output 'db_instance_endpoint' is missing",
                details={"module": str(self.module_dir)},
            )
        return DBInfraData(
            endpoint=endpoint,
            port=int(outputs.get("db_instance_port") or 5432),
            instance_name=self.credentials.postgres_db,
            provider=Provider.AWS,
        )

    def provision_and_fetch(self) -> DBInfraData:
        outputs = self.terraform.apply_with_import(classify_apply_failure, self._resolve_imports)
        data = self._data_from_outputs(outputs)
        self.credentials.set_database_url(data.host, data.port)
        self.store.save(self.kind, data)
        logger.info("rds_ready", endpoint=data.endpoint)
        return data

    def fetch_existing_data(self) -> DBInfraData:
        self.terraform.init()
        return self._data_from_outputs(self.terraform.output())

    def _admin_url(self, data: DBInfraData) -> str:
        if not data.host:
            raise ConfigurationError("RDS endpoint is missing from the database data")
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
        username, _ = self._app_credentials()
        try:
            return sql.role_exists(self._admin_url(data), username)
        except OperationalError as e:
            if sql.is_auth_failure(e):
                logger.info("db_user_auth_failed", user=username)
            else:
                logger.warning("db_direct_check_failed", error=str(e))
            return False

    def create_user(self, data: DBInfraData) -> None:
        username, password = self._app_credentials()
        try:
            sql.create_role(self._admin_url(data), username, password)
        except SQLAlchemyError as e:
            raise ProvisioningError(
                f"Could not create database user '{username}'",
                details={"sql_error": str(e)},
            ) from e
        logger.info("db_user_created", user=username, channel="sql")

"""Picks the storage/database/compute adapters for the configured provider."""

from __future__ import annotations

from dataclasses import dataclass

from appwizard.config.cli_config import CliConfig, Provider
from appwizard.config.settings import Settings, get_settings
from appwizard.core.errors import ConfigurationError
from appwizard.infra.base import (
    ComputeReconciler,
    DatabaseReconciler,
    InfraLayout,
    StorageReconciler,
)
from appwizard.infra.runner import CommandRunner


@dataclass
class CloudProviderServices:
    provider: Provider
    storage: StorageReconciler
    database: DatabaseReconciler
    compute: ComputeReconciler

    @classmethod
    def for_config(
        cls,
        config: CliConfig,
        layout: InfraLayout,
        runner: CommandRunner | None = None,
        settings: Settings | None = None,
    ) -> CloudProviderServices:
        runner = runner or CommandRunner()
        settings = settings or get_settings()

        if config.provider is None:
            raise ConfigurationError(
                "No cloud provider configured; run 'appwizard config provider' first"
            )

        if config.provider.name is Provider.GOOGLE_CLOUD:
            from appwizard.infra.google import (
                GoogleComputeService,
                GoogleDatabaseService,
                GoogleStorageService,
            )

            return cls(
                provider=Provider.GOOGLE_CLOUD,
                storage=GoogleStorageService(config, layout, runner, settings),
                database=GoogleDatabaseService(config, layout, runner, settings),
                compute=GoogleComputeService(config, layout, runner, settings),
            )

        if config.provider.name is Provider.AWS:
            from appwizard.infra.aws import AWSComputeService, AWSDatabaseService, AWSStorageService

            return cls(
                provider=Provider.AWS,
                storage=AWSStorageService(config, layout, runner, settings),
                database=AWSDatabaseService(config, layout, runner, settings),
                compute=AWSComputeService(config, layout, runner, settings),
            )

        raise ConfigurationError(f"Unsupported provider '{config.provider.name}'")

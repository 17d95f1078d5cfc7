"""Project (``.app-template``) and ambient (environment) configuration."""

from appwizard.config.cli_config import (
    CONFIG_FILE_NAME,
    AWSProviderConfig,
    BuildOptions,
    CliConfig,
    GoogleProviderConfig,
    InfraPerformance,
    Provider,
    ProviderConfig,
)
from appwizard.config.settings import Settings, get_settings

__all__ = [
    "CONFIG_FILE_NAME",
    "AWSProviderConfig",
    "BuildOptions",
    "CliConfig",
    "GoogleProviderConfig",
    "InfraPerformance",
    "Provider",
    "ProviderConfig",
    "Settings",
    "get_settings",
]

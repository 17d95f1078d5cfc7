"""Core primitives shared by every appwizard command."""

from appwizard.core.errors import (
    AppWizardError,
    BlockedError,
    ConfigurationError,
    CycleOrMissingDependencyError,
    ExitCode,
    ProvisioningError,
    ValidationError,
    main_with_error_handling,
)

__all__ = [
    "AppWizardError",
    "BlockedError",
    "ConfigurationError",
    "CycleOrMissingDependencyError",
    "ExitCode",
    "ProvisioningError",
    "ValidationError",
    "main_with_error_handling",
]

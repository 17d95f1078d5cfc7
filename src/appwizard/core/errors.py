"""
Unified error handling for appwizard CLI commands.

Exit Codes:
- 0: Success
- 1: Warning (operation succeeded, best-effort checks failed)
- 2: Blocked (operator declined a required step)
- 10: Configuration error
- 11: Provisioning error (terraform / provider CLI failure)
- 12: Validation error (e.g. unresolvable service order)
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, Iterable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    WARNING = 1
    BLOCKED = 2
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    VALIDATION_ERROR = 12
    UNKNOWN_ERROR = 127


class AppWizardError(Exception):
    """Base exception for appwizard errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(AppWizardError):
    """Missing or inconsistent configuration (fatal, never retried)."""

    exit_code = ExitCode.CONFIG_ERROR


class ProvisioningError(AppWizardError):
    """Provisioning tool or provider CLI failed for a non-recoverable reason."""

    exit_code = ExitCode.PROVIDER_ERROR

    def __init__(
        self,
        message: str,
        stderr: str = "",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.stderr = stderr


class ValidationError(AppWizardError):
    """Raised for validation failures."""

    exit_code = ExitCode.VALIDATION_ERROR


class CycleOrMissingDependencyError(ValidationError):
    """Some services could not be scheduled.

    Either the dependency graph has a cycle or a service depends on a name
    that is never declared. Both surface as the same error; ``missing`` only
    helps with diagnosis.
    """

    def __init__(self, unscheduled: Iterable[str], missing: Iterable[str] = ()):
        self.unscheduled = list(unscheduled)
        self.missing = sorted(set(missing))
        message = "Cycle detected or deployment order incomplete: " + ", ".join(
            self.unscheduled
        )
        details: dict[str, Any] = {"unscheduled": self.unscheduled}
        if self.missing:
            details["missing"] = self.missing
        super().__init__(message, details)


class BlockedError(AppWizardError):
    """Raised when the operator declines a step the command cannot skip."""

    exit_code = ExitCode.BLOCKED


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI command functions that provides unified error handling.

    Exit codes:
        - AppWizardError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            from appwizard.cli.ux import error as print_error

            try:
                return func(*args, **kwargs)
            except AppWizardError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=int(e.exit_code),
                        **e.details,
                    )
                print_error(format_error_message(e))
                stderr = getattr(e, "stderr", "")
                if stderr:
                    print(stderr.rstrip(), file=sys.stderr)
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130  # Standard exit code for SIGINT
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=int(ExitCode.UNKNOWN_ERROR),
                    )
                print_error(f"Unexpected error: {e}")
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: AppWizardError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg

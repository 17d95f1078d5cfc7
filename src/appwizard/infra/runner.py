"""
Subprocess wrapper for the external tools appwizard drives.

terraform, gcloud, aws, docker and docker-compose are all invoked through
``CommandRunner`` so tests can substitute a scripted runner.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import structlog

logger = structlog.get_logger()


@dataclass
class CommandResult:
    """Outcome of one external command."""

    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def output(self) -> str:
        """stdout and stderr combined, for signature matching."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


@dataclass
class CommandRunner:
    """Runs commands synchronously and never raises for tool failures."""

    env: dict[str, str] | None = None

    def run(
        self,
        args: Sequence[str],
        cwd: str | Path | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """
        Run a command and capture its output.

        Args:
            args: Executable and arguments
            cwd: Working directory
            timeout: Seconds before the command is killed

        Returns:
            CommandResult; a missing executable gives return code 127
        """
        argv = [str(a) for a in args]
        logger.debug("run_command", args=argv, cwd=str(cwd) if cwd else None)

        try:
            completed = subprocess.run(
                argv,
                cwd=cwd,
                env=self.env,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except FileNotFoundError:
            result = CommandResult(argv, 127, stderr=f"{argv[0]}: command not found")
        except subprocess.TimeoutExpired as e:
            result = CommandResult(
                argv,
                -1,
                stdout=_decode(e.stdout),
                stderr=_decode(e.stderr),
                timed_out=True,
            )
        else:
            result = CommandResult(
                argv,
                completed.returncode,
                stdout=completed.stdout or "",
                stderr=completed.stderr or "",
            )

        if not result.ok:
            logger.debug(
                "command_failed",
                args=argv,
                returncode=result.returncode,
                timed_out=result.timed_out,
            )
        return result


def _decode(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value

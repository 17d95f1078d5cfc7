"""
Terraform driven as a black box.

Only exit codes and captured output are used as signals. ``apply_with_import``
makes apply idempotent against resources that exist outside terraform state:
when apply fails with a known conflict signature, the live resources are
imported and apply is run again.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import structlog

from appwizard.core.errors import ProvisioningError
from appwizard.infra.models import ApplyFailure
from appwizard.infra.runner import CommandResult, CommandRunner

logger = structlog.get_logger()

TFVARS_FILE = "terraform.tfvars.json"

# Import of an address that is already in state
ALREADY_MANAGED = "Resource already managed by Terraform"


def classify_by_signatures(output: str, signatures: tuple[str, ...]) -> ApplyFailure:
    """CONFLICT if any signature occurs in the tool output, otherwise FATAL."""
    lowered = output.lower()
    if any(sig.lower() in lowered for sig in signatures):
        return ApplyFailure.CONFLICT
    return ApplyFailure.FATAL


def write_tfvars(module_dir: Path, variables: dict[str, Any]) -> Path:
    """Overwrite the module's variables file."""
    module_dir.mkdir(parents=True, exist_ok=True)
    path = module_dir / TFVARS_FILE
    path.write_text(json.dumps(variables, indent=2) + "\n", encoding="utf-8")
    logger.info("tfvars_written", path=str(path))
    return path


class Terraform:
    """Runs terraform subcommands inside one module directory."""

    def __init__(self, module_dir: str | Path, runner: CommandRunner | None = None):
        self.module_dir = Path(module_dir)
        self.runner = runner or CommandRunner()
        self._initialized = False

    def _run(self, *args: str) -> CommandResult:
        return self.runner.run(["terraform", *args], cwd=self.module_dir)

    def _require(self, result: CommandResult, action: str) -> CommandResult:
        if not result.ok:
            raise ProvisioningError(
                f"terraform {action} failed in {self.module_dir}",
                stderr=result.stderr or result.stdout,
                details={"returncode": result.returncode},
            )
        return result

    def init(self) -> None:
        if self._initialized:
            return
        self._require(self._run("init", "-input=false"), "init")
        self._initialized = True

    def apply(self) -> CommandResult:
        """Run apply; failure is returned, not raised, so callers can classify it."""
        self.init()
        logger.info("terraform_apply", module=str(self.module_dir))
        return self._run("apply", "-auto-approve", "-input=false", f"-var-file={TFVARS_FILE}")

    def import_resource(self, address: str, resource_id: str) -> None:
        self.init()
        logger.info("terraform_import", module=str(self.module_dir), address=address, id=resource_id)
        result = self._run("import", "-input=false", f"-var-file={TFVARS_FILE}", address, resource_id)
        if not result.ok and ALREADY_MANAGED in result.output:
            logger.info("terraform_import_skipped", address=address)
            return
        self._require(result, f"import {address}")

    def refresh(self) -> None:
        self._require(
            self._run("refresh", "-input=false", f"-var-file={TFVARS_FILE}"), "refresh"
        )

    def output(self) -> dict[str, Any]:
        """Read outputs with their ``{"value": ...}`` envelopes removed."""
        result = self._require(self._run("output", "-json"), "output")
        try:
            raw = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as e:
            raise ProvisioningError(
                f"terraform output in {self.module_dir} is not JSON", stderr=result.stdout
            ) from e
        return {
            name: item.get("value") if isinstance(item, dict) and "value" in item else item
            for name, item in raw.items()
        }

    def apply_with_import(
        self,
        classify: Callable[[str], ApplyFailure],
        resolve_imports: Callable[[], list[tuple[str, str]]],
    ) -> dict[str, Any]:
        """
        Apply, recovering from "already exists" conflicts by importing.

        Args:
            classify: Maps apply output to CONFLICT or FATAL
            resolve_imports: Looks up ``(address, live_id)`` pairs to import

        Returns:
            Terraform outputs after a successful apply

        Raises:
            ProvisioningError: on a fatal apply failure, or if import or the
                second apply fails
        """
        result = self.apply()
        if not result.ok:
            failure = classify(result.output)
            if failure is ApplyFailure.FATAL:
                raise ProvisioningError(
                    f"terraform apply failed in {self.module_dir}",
                    stderr=result.stderr or result.stdout,
                    details={"returncode": result.returncode},
                )

            logger.warning("terraform_apply_conflict", module=str(self.module_dir))
            imports = resolve_imports()
            if not imports:
                raise ProvisioningError(
                    "Resource already exists but its live identifier could not be found",
                    stderr=result.stderr,
                    details={"module": str(self.module_dir)},
                )
            for address, resource_id in imports:
                self.import_resource(address, resource_id)
            self.refresh()
            self._require(self.apply(), "apply after import")

        return self.output()

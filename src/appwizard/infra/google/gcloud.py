"""
gcloud helpers shared by the Google Cloud adapters.

Authentication is checked before every live-state query. When credentials
are missing and auto-login is enabled, a service account key file (if
configured) is activated non-interactively.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import structlog

from appwizard.config.settings import Settings
from appwizard.infra.runner import CommandRunner

logger = structlog.get_logger()

ADC_RELATIVE_PATH = Path(".config") / "gcloud" / "application_default_credentials.json"


def _credential_candidates() -> list[Path]:
    candidates: list[Path] = []
    if os.environ.get("APPDATA"):
        candidates.append(
            Path(os.environ["APPDATA"]) / "gcloud" / "application_default_credentials.json"
        )
    for var in ("HOME", "USERPROFILE"):
        if os.environ.get(var):
            candidates.append(Path(os.environ[var]) / ADC_RELATIVE_PATH)
    return candidates


def has_credentials() -> bool:
    """GOOGLE_APPLICATION_CREDENTIALS or application default credentials on disk."""
    key_path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    if key_path:
        if Path(key_path).exists():
            return True
        logger.warning("gcloud_key_file_missing", path=key_path)

    return any(path.exists() for path in _credential_candidates())


def ensure_authenticated(runner: CommandRunner, settings: Settings) -> bool:
    """
    Make sure gcloud can call the APIs.

    Returns False instead of raising; an unauthenticated provider simply
    means the live state cannot be confirmed.
    """
    if has_credentials():
        return True

    if not settings.auto_login or settings.google_key_file is None:
        logger.warning("gcloud_not_authenticated", auto_login=settings.auto_login)
        return False

    result = runner.run(
        ["gcloud", "auth", "activate-service-account", f"--key-file={settings.google_key_file}"]
    )
    if not result.ok:
        logger.warning("gcloud_auto_login_failed", stderr=result.stderr.strip())
        return False

    os.environ.setdefault("GOOGLE_APPLICATION_CREDENTIALS", str(settings.google_key_file))
    logger.info("gcloud_auto_login_succeeded", key_file=str(settings.google_key_file))
    return True


def enable_service(runner: CommandRunner, project_id: str, api: str) -> bool:
    logger.info("gcloud_enable_service", project=project_id, api=api)
    result = runner.run(["gcloud", "services", "enable", api, f"--project={project_id}"])
    if not result.ok:
        logger.warning("gcloud_enable_service_failed", api=api, stderr=result.stderr.strip())
    return result.ok


def describe(
    runner: CommandRunner,
    args: list[str],
    project_id: str,
    api: str | None = None,
) -> dict[str, Any] | None:
    """
    Run a ``gcloud ... describe --format=json`` command.

    Returns the parsed resource, or None when it does not exist or cannot be
    read. A disabled API is enabled once and the describe retried.
    """
    argv = ["gcloud", *args, f"--project={project_id}", "--format=json"]
    result = runner.run(argv)

    if not result.ok and api and "SERVICE_DISABLED" in result.output:
        if enable_service(runner, project_id, api):
            result = runner.run(argv)

    if not result.ok:
        if "NOT_FOUND" in result.output or "was not found" in result.output:
            logger.info("gcloud_resource_not_found", args=args)
        else:
            logger.warning("gcloud_describe_failed", args=args, stderr=result.stderr.strip())
        return None

    try:
        return json.loads(result.stdout or "{}")
    except json.JSONDecodeError:
        logger.warning("gcloud_describe_not_json", args=args)
        return None

"""Loading, saving and querying Docker Compose documents."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml

from appwizard.core.errors import ConfigurationError

logger = structlog.get_logger()

COMPOSE_FILES = {
    "dev": "docker-compose.dev.yml",
    "prod": "docker-compose.prod.yml",
}


def compose_file_name(env: str) -> str:
    try:
        return COMPOSE_FILES[env]
    except KeyError as e:
        raise ConfigurationError(
            f"Unknown environment '{env}'", details={"supported": sorted(COMPOSE_FILES)}
        ) from e


def load_compose(path: str | Path) -> dict[str, Any]:
    """Parse a compose file; a missing file is a configuration error."""
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Compose file not found: {path}", details={"path": str(path)})

    try:
        with open(path, encoding="utf-8") as f:
            document = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(document, dict):
        raise ConfigurationError(f"Compose file {path} must contain a mapping")
    return document


def save_compose(path: str | Path, document: dict[str, Any]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(document, f, sort_keys=False, default_flow_style=False)
    logger.info("compose_saved", path=str(path))


def _service(document: dict[str, Any], name: str) -> dict[str, Any]:
    services = document.get("services") or {}
    if name not in services:
        raise ConfigurationError(f"Service '{name}' is not declared in the compose file")
    return services[name] or {}


def service_build_context(document: dict[str, Any], name: str, project_dir: str | Path) -> Path:
    build = _service(document, name).get("build")
    if isinstance(build, str):
        context = build
    elif isinstance(build, dict) and build.get("context"):
        context = build["context"]
    else:
        context = f"containers/{name}"
    return Path(project_dir) / context


def service_healthcheck(document: dict[str, Any], name: str) -> str | None:
    """Return the healthcheck test command as a single string, if any."""
    healthcheck = _service(document, name).get("healthcheck") or {}
    test = healthcheck.get("test")
    if not test:
        return None
    if isinstance(test, list):
        return " ".join(str(part) for part in test)
    return str(test)
